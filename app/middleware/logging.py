"""Structured request logging.

Every request produces one JSON line on stdout. Generation responses stream
long after their headers go out, so ``processing_time_ms`` is the time to
first byte, not the time the paper was finished.
"""

import json
import logging
import sys
import time
import uuid
from typing import Any, Awaitable, Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stdout)

logger = logging.getLogger(__name__)

SUBJECT_COUNT_HEADER = "X-Subject-Count"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _base_fields(request: Request, request_id: str) -> Dict[str, Any]:
    return {
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "user_ip": request.client.host if request.client else "unknown",
    }


def _subject_count(response: Response) -> Any:
    value = response.headers.get(SUBJECT_COUNT_HEADER)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log method, path, status, latency and client address for each request.

    Generation requests also carry ``subject_count``, read back from the
    response header the generation router sets. Bodies and provider keys
    are never logged.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
        request.state.request_id = request_id

        fields = _base_fields(request, request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            fields.update(
                status_code=500,
                processing_time_ms=_elapsed_ms(started),
                error=str(e),
                error_type=type(e).__name__,
                message=f"Unhandled error on {request.method} {request.url.path}",
            )
            logger.error(json.dumps(fields), exc_info=True)
            raise

        fields.update(status_code=response.status_code, processing_time_ms=_elapsed_ms(started))
        subject_count = _subject_count(response)
        if subject_count is not None:
            fields["subject_count"] = subject_count
        logger.info(json.dumps(fields))

        response.headers["X-Request-ID"] = request_id
        return response
