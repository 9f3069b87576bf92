# clinic/core/request_logging.py
"""
Request logging middleware and audit logging for override actions.
"""

import time
import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from clinic.core.logging_config import get_logger

logger = get_logger(__name__)

#: Paths logged at DEBUG instead of INFO.
QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every HTTP request with timing and status code.

    Each request gets a unique ID, returned in the X-Request-ID header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "%s %s - %d (%.2fms) - unhandled error",
                request.method,
                request.url.path,
                status_code,
                duration_ms,
                extra={"extra_fields": self._log_data(request, request_id, status_code, duration_ms)},
                exc_info=True,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        extra = {"extra_fields": self._log_data(request, request_id, status_code, duration_ms)}
        message = "%s %s - %d (%.2fms)"
        args = (request.method, request.url.path, status_code, duration_ms)

        if status_code >= 500:
            logger.error(message, *args, extra=extra)
        elif status_code >= 400:
            logger.warning(message, *args, extra=extra)
        elif request.url.path in QUIET_PATHS:
            logger.debug(message, *args, extra=extra)
        else:
            logger.info(message, *args, extra=extra)

        response.headers["X-Request-ID"] = request_id
        return response

    @staticmethod
    def _log_data(request: Request, request_id: str, status_code: int, duration_ms: float) -> dict:
        return {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
        }


def log_override_event(
    action: str,
    assignment_id: str,
    date: str,
    success: bool = True,
    details: dict | None = None,
) -> None:
    """
    Audit log entry for an admin override.

    Args:
        action: cancel, restore, swap or reassign
        assignment_id: Assignment of the affected occurrence
        date: Date of the affected occurrence ("YYYY-MM-DD")
        success: Whether the action was written
        details: Additional fields (target provider, reason for rejection)
    """
    log_data = {
        "action": action,
        "assignment_id": assignment_id,
        "date": date,
        "success": success,
    }
    if details:
        log_data.update(details)

    extra = {"extra_fields": log_data}

    if success:
        logger.info("Override %s: %s on %s - OK", action, assignment_id, date, extra=extra)
    else:
        logger.warning("Override %s: %s on %s - REJECTED", action, assignment_id, date, extra=extra)
