"""HTTP middleware: request IDs, error rendering and request timing."""

import time
import uuid
from datetime import datetime
from typing import Any, Callable, Dict
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .exceptions import WorkflowEngineError, create_error_response, status_code_for_error
from .logging import get_logger, set_logging_context, clear_logging_context


logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _json_error(status_code: int, body: Dict[str, Any], request_id: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers={REQUEST_ID_HEADER: request_id})


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Tags every request with an ID and turns errors that escape the
    endpoints into JSON bodies.

    Workflow builder errors keep their own status code (400, 404 or 500);
    anything else becomes a 500 ``InternalServerError``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        route = f"{request.method} {request.url.path}"
        set_logging_context(request_id=request_id)

        try:
            response = await call_next(request)
        except WorkflowEngineError as e:
            logger.warning(f"{route} failed: {e.error_code}: {e.message}", extra={"error_details": e.to_dict()})
            return _json_error(status_code_for_error(e), create_error_response(e), request_id)
        except Exception as e:
            logger.error(f"{route} raised {type(e).__name__}: {e}", exc_info=True)
            return _json_error(500, {
                "error": "InternalServerError",
                "message": "An unexpected error occurred",
                "details": {
                    "error_type": type(e).__name__,
                    "timestamp": datetime.utcnow().isoformat()
                },
                "request_id": request_id
            }, request_id)
        finally:
            clear_logging_context("request_id")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class PerformanceMonitoringMiddleware(BaseHTTPMiddleware):
    """Reports each request's duration and warns about slow ones."""

    def __init__(self, app, slow_request_threshold: float = 5.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        if elapsed > self.slow_request_threshold:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} took {elapsed:.3f}s "
                f"(threshold {self.slow_request_threshold}s)"
            )
        else:
            logger.debug(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s")

        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"
        return response
