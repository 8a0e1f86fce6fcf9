from __future__ import annotations

from fastapi import FastAPI

from ferryman import __version__
from ferryman.api.endpoints import health
from ferryman.api.endpoints import metrics
from ferryman.api.endpoints import things
from ferryman.api.middleware.error_shaping import SafeErrorMiddleware
from ferryman.api.middleware.request_context import RequestContextMiddleware

app = FastAPI(
    title="Ferryman Validation Demo API",
    version=__version__,
)

# ------------------------------------------------------------
# Middleware stack (ORDER MATTERS)
# Starlette reverses add_middleware order: the LAST call = OUTERMOST wrapper.
#   SafeErrorMiddleware → RequestContext → handler
# ------------------------------------------------------------
app.add_middleware(RequestContextMiddleware)
app.add_middleware(SafeErrorMiddleware)

app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(things.router_v1)
app.include_router(things.router_v2)


@app.get("/health")
def health_check():
    return {"status": "healthy"}
