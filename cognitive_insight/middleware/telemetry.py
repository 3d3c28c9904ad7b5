"""Request instrumentation feeding the Prometheus registry."""

from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from cognitive_insight.telemetry import observe_request

_UNOBSERVED_PATHS = frozenset({"/metrics"})


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Collect request count, latency and 5xx metrics per route template."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in _UNOBSERVED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            observe_request(
                request.method,
                route_label(request),
                500,
                time.perf_counter() - started,
            )
            raise

        # The route is only resolved once the router has run.
        observe_request(
            request.method,
            route_label(request),
            response.status_code,
            time.perf_counter() - started,
        )
        return response


def route_label(request: Request) -> str:
    """Use the route template (``/sessions/{session_id}``) to bound label cardinality."""

    route = request.scope.get("route")
    template = getattr(route, "path", None)
    return template or request.url.path


__all__ = ["TelemetryMiddleware", "route_label"]
