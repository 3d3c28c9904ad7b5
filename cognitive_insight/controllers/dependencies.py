"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from cognitive_insight.application.interfaces import (
    ResultRepositoryInterface,
    SessionObserverInterface,
)
from cognitive_insight.config.settings import settings
from cognitive_insight.infrastructure.persistence.repositories_sqlalchemy import (
    get_result_repository as _sqlalchemy_result_repository,
)
from cognitive_insight.services.audio_device import MicrophonePermission
from cognitive_insight.services.evaluator import get_answer_evaluator
from cognitive_insight.services.question_bank import (
    get_question_bank as _json_question_bank,
)
from cognitive_insight.services.speech import create_speech_capability
from cognitive_insight.session.controller import SessionController
from cognitive_insight.session.registry import SessionRegistry


def build_session_controller(
    session_id: str,
    observer: SessionObserverInterface,
) -> SessionController:
    """Wire a controller with its own speech capability and the shared services."""

    return SessionController(
        speech=create_speech_capability(settings),
        permission=MicrophonePermission(sample_rate=settings.transcribe.sample_rate),
        question_bank=_json_question_bank(),
        evaluator=get_answer_evaluator(),
        repository=_sqlalchemy_result_repository(),
        config=settings.session,
        session_id=session_id,
        observer=observer,
    )


@lru_cache
def get_session_registry() -> SessionRegistry:
    return SessionRegistry(
        build_session_controller,
        max_finished=settings.session.max_finished_sessions,
    )


def get_result_repository() -> ResultRepositoryInterface:
    return _sqlalchemy_result_repository()


RegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]
ResultRepositoryDep = Annotated[ResultRepositoryInterface, Depends(get_result_repository)]


__all__ = [
    "RegistryDep",
    "ResultRepositoryDep",
    "build_session_controller",
    "get_result_repository",
    "get_session_registry",
]
