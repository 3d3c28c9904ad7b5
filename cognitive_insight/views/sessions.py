"""Schemas for the interview session endpoints."""

from pydantic import BaseModel


class SessionStartResponse(BaseModel):
    session_id: str
    state: str
