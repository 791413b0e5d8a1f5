from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.shopbook.core.context import get_request_context
from app.shopbook.core.logging import REQUEST_LOGGER, log_json
from app.shopbook.core.metrics import metrics
from app.shopbook.core.timing import get_query_time_ms, start_query_timer, stop_query_timer

logger = logging.getLogger(REQUEST_LOGGER)


def build_request_log_payload(
    *,
    request: Request,
    response: Response | None,
    latency_ms: float,
    query_time_ms: float | None,
) -> dict:
    scope_route = request.scope.get("route")
    route = getattr(scope_route, "path", None) if scope_route is not None else None
    context = get_request_context(request)
    return {
        "event": "http_request",
        "trace_id": context.trace_id,
        "user_id": context.user_id,
        "shop_id": request.query_params.get("shop_id"),
        "route": route or request.url.path,
        "method": request.method,
        "status_code": getattr(response, "status_code", 500),
        "latency_ms": round(latency_ms, 2),
        "db_time_ms": round(query_time_ms, 2) if query_time_ms is not None else None,
        "error_code": getattr(request.state, "error_code", None),
        "error_class": getattr(request.state, "error_class", None),
    }


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        token = start_query_timer()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            query_time_ms = get_query_time_ms()
            stop_query_timer(token)
            payload = build_request_log_payload(
                request=request,
                response=response,
                latency_ms=latency_ms,
                query_time_ms=query_time_ms,
            )
            log_json(logger, payload)
            metrics.record_http_request(
                route=payload["route"],
                method=payload["method"],
                status_code=payload["status_code"],
                latency_ms=latency_ms,
            )
