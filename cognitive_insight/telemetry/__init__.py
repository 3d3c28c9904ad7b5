"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    EVALUATOR_FAILURES,
    EVALUATOR_LATENCY,
    LISTEN_FAILURES,
    REPEAT_REQUESTS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    SESSIONS_COMPLETED,
    SESSIONS_FAILED,
    SESSIONS_STARTED,
    observe_evaluation,
    observe_request,
    record_listen_failure,
    record_repeat_request,
    record_session_completed,
    record_session_failed,
    record_session_started,
)

__all__ = [
    "ERROR_COUNTER",
    "EVALUATOR_FAILURES",
    "EVALUATOR_LATENCY",
    "LISTEN_FAILURES",
    "REPEAT_REQUESTS",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "SESSIONS_COMPLETED",
    "SESSIONS_FAILED",
    "SESSIONS_STARTED",
    "observe_evaluation",
    "observe_request",
    "record_listen_failure",
    "record_repeat_request",
    "record_session_completed",
    "record_session_failed",
    "record_session_started",
]
