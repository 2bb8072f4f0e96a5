# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
HTTP middleware: request context for logs and Prometheus request metrics.
"""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from roster.core.config import settings
from roster.core.logging import caller_id_var, get_logger, request_id_var
from roster.metrics.prometheus import HTTP_ERRORS, REQUEST_COUNT, REQUEST_LATENCY

logger = get_logger(__name__)

SKIP_PATHS: tuple[str, ...] = (
    "/health", "/health/ready", "/metrics", "/openapi.json", "/docs", "/redoc",
)

UNMATCHED_ENDPOINT = "unmatched"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Propagate or generate X-Request-ID and bind it, together with the
    gateway-supplied caller id, to the logging context of the request.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        caller_id = request.headers.get(settings.USER_ID_HEADER) or None
        request.state.request_id = request_id

        request_token = request_id_var.set(request_id)
        caller_token = caller_id_var.set(caller_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(request_token)
            caller_id_var.reset(caller_token)
        response.headers["X-Request-ID"] = request_id
        return response


def endpoint_label(request: Request) -> str:
    """
    The route template that served the request, e.g.
    /api/v1/swap-requests/{request_id}/respond. Ids never become label values.
    """
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ENDPOINT


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count requests, latency and error responses per route template."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        if request.url.path in SKIP_PATHS:
            return response

        endpoint = endpoint_label(request)
        status = str(response.status_code)
        REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=status).inc()
        REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(duration)
        if response.status_code >= 400:
            HTTP_ERRORS.labels(method=request.method, endpoint=endpoint, status=status).inc()
        if response.status_code >= 500:
            logger.warning("%s %s -> %s in %.3fs", request.method, endpoint, status, duration)
        return response
