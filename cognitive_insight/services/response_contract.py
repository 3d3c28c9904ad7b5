"""Pydantic models for validating LLM JSON responses.

The evaluator runs every Bedrock reply through these schemas so that the
session controller only ever sees a normalized score and explanation.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class EvaluationResponse(BaseModel):
    score: int
    explanation: str = Field(default="")

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, value: object) -> int:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, str):
            value = value.strip()
        return 1 if float(value) >= 1 else 0

    @field_validator("explanation", mode="before")
    @classmethod
    def default_explanation(cls, value: object) -> str:
        return "" if value is None else str(value).strip()

    @classmethod
    def from_json(cls, payload: str) -> "EvaluationResponse":
        # Invalid JSON surfaces as a pydantic ValidationError (json_invalid).
        return cls.model_validate_json(_clean_json_payload(payload))


class ResponseContractError(RuntimeError):
    """Raised when the LLM response contract cannot be validated."""


def _clean_json_payload(payload: str) -> str:
    """Strip Markdown code blocks and find the first/last brace to extract JSON."""
    if not payload:
        return ""

    cleaned = payload.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]

    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]

    cleaned = cleaned.strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")

    if start != -1 and end != -1 and end > start:
        cleaned = cleaned[start : end + 1]

    return cleaned


__all__ = [
    "EvaluationResponse",
    "ResponseContractError",
]
