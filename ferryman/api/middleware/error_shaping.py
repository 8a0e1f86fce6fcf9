from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from ferryman.core.dispatch import target_of

log = logging.getLogger("ferryman.errors")

GENERIC_DETAIL = "Internal Server Error"


def guarding_validator(request: Request) -> Optional[str]:
    """Name of the validator wrapping the matched endpoint, if any."""
    endpoint = request.scope.get("endpoint")
    target = target_of(endpoint) if endpoint is not None else None
    return target.name if target is not None else None


class SafeErrorMiddleware(BaseHTTPMiddleware):
    """
    Crashes in validators, error views, responders and handlers become a
    generic 500 carrying only the request id. The traceback and the guarding
    validator are logged server-side.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception:
            rid = getattr(request.state, "request_id", None) or request.headers.get("x-request-id")
            log.exception(
                "unhandled error rid=%s %s %s validator=%s",
                rid,
                request.method,
                request.url.path,
                guarding_validator(request) or "-",
            )
            payload = {"detail": GENERIC_DETAIL}
            if rid:
                payload["request_id"] = rid
            return JSONResponse(status_code=500, content=payload)
