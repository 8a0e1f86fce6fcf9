from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ferryman.api.observability.metrics import observe_request
from ferryman.api.middleware.error_shaping import guarding_validator

log = logging.getLogger("ferryman.request")

REQUEST_ID_HEADER = "X-Request-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Adds:
      request.state.request_id
      response header: X-Request-Id
      one structured log line per /api/ request, naming the validator
      that guarded the matched route (if any)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = rid

        started = time.perf_counter()
        resp = await call_next(request)
        elapsed = time.perf_counter() - started

        resp.headers[REQUEST_ID_HEADER] = rid
        observe_request(request.method, request.url.path, resp.status_code, elapsed)

        if request.url.path.startswith("/api/"):
            # Bodies and params are never logged.
            log.info(
                "%s",
                {
                    "event": "request",
                    "request_id": rid,
                    "method": request.method,
                    "path": request.url.path,
                    "validator": guarding_validator(request),
                    "status_code": resp.status_code,
                    "duration_ms": int(elapsed * 1000),
                },
            )
        return resp
