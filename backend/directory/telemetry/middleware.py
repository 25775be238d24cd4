from __future__ import annotations

import logging

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from .logging_utils import PERF_LEVEL_NUM, PERF_LOGGER_NAME
from .trace import QueryTrace, reset_current_trace, set_current_trace

logger = logging.getLogger(__name__)
perf_logger = logging.getLogger(PERF_LOGGER_NAME)


class TelemetryMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        trace = QueryTrace(path=request.url.path, method=request.method)
        request.state.request_id = str(trace.request_id)
        token = set_current_trace(trace)

        response: Response | None = None
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            trace.finalize()
            if response is not None and request.url.path.startswith("/api/"):
                response.headers["X-Search-Performance"] = trace.to_header_value()
                response.headers["X-Request-Id"] = str(trace.request_id)

            self._log_trace(trace, status_code)
            reset_current_trace(token)

    def _log_trace(self, trace: QueryTrace, status_code: int) -> None:
        if not trace.ranking_active:
            return

        missing_stages = trace.missing_required_stages()
        if missing_stages and status_code < 400:
            logger.warning(
                "Query trace missing stage timing(s): %s",
                ", ".join(missing_stages),
                extra={"request_id": str(trace.request_id)},
            )

        perf_logger.log(
            PERF_LEVEL_NUM,
            "query_trace request_id=%s status=%s category=%r city=%r state=%s page=%s ingestion_ms=%s db_ms=%s ranking_ms=%s total_ms=%s results=%s provider_calls=%s",
            trace.request_id,
            status_code,
            trace.category,
            trace.city,
            trace.state,
            trace.page,
            trace.ingestion_time_ms,
            trace.db_time_ms,
            trace.ranking_time_ms,
            trace.total_time_ms,
            trace.result_count,
            trace.provider_calls,
        )
