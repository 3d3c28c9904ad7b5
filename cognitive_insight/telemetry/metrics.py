"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

SESSIONS_STARTED = Counter(
    "voice_sessions_started_total",
    "Number of interview sessions started",
)

SESSIONS_COMPLETED = Counter(
    "voice_sessions_completed_total",
    "Number of interview sessions that reached the completed state",
)

SESSIONS_FAILED = Counter(
    "voice_sessions_failed_total",
    "Number of interview sessions that ended in the failed state",
    ("kind",),
)

LISTEN_FAILURES = Counter(
    "voice_listen_failures_total",
    "Recognition attempts that did not yield an accepted answer",
    ("category",),
)

REPEAT_REQUESTS = Counter(
    "voice_repeat_requests_total",
    "Number of times a participant asked for a prompt to be repeated",
)

EVALUATOR_LATENCY = Histogram(
    "answer_evaluator_duration_seconds",
    "Answer evaluator call duration in seconds",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0),
)

EVALUATOR_FAILURES = Counter(
    "answer_evaluator_failures_total",
    "Evaluator calls that failed and were scored as zero",
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def record_session_started() -> None:
    SESSIONS_STARTED.inc()


def record_session_completed() -> None:
    SESSIONS_COMPLETED.inc()


def record_session_failed(kind: str) -> None:
    """Count a failed session under the name of the error that ended it."""

    SESSIONS_FAILED.labels(kind=kind or "unknown").inc()


def record_listen_failure(category: str) -> None:
    LISTEN_FAILURES.labels(category=category).inc()


def record_repeat_request() -> None:
    REPEAT_REQUESTS.inc()


def observe_evaluation(duration_seconds: float, failed: bool) -> None:
    """Record latency for one evaluator call, and its failure if any."""

    EVALUATOR_LATENCY.observe(max(0.0, duration_seconds))
    if failed:
        EVALUATOR_FAILURES.inc()
