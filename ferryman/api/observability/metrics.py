from __future__ import annotations

import re

from prometheus_client import Counter, Histogram

_UUID_SEGMENT = re.compile(r"/[0-9a-fA-F]{8}(?:-[0-9a-fA-F]{4}){3}-[0-9a-fA-F]{12}")
_INT_SEGMENT = re.compile(r"/\d+(?=/|$)")


def normalize_path(path: str) -> str:
    """Collapse ids in paths so metric labels stay low-cardinality."""
    p = _UUID_SEGMENT.sub("/:uuid", path or "/")
    return _INT_SEGMENT.sub("/:id", p)


HTTP_REQUESTS_TOTAL = Counter(
    "ferryman_http_requests_total",
    "HTTP requests served by the demo API",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "ferryman_http_request_duration_seconds",
    "HTTP request latency of the demo API",
    ["method", "path"],
)


def observe_request(method: str, path: str, status: int, seconds: float) -> None:
    p = normalize_path(path)
    m = method.upper()
    HTTP_REQUESTS_TOTAL.labels(method=m, path=p, status=str(status)).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(method=m, path=p).observe(seconds)
