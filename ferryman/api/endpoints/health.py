from __future__ import annotations

from fastapi import APIRouter

from ferryman.core.settings import get_settings

router = APIRouter()


@router.get("/health/live")
def live():
    return {"status": "ok"}


@router.get("/health/ready")
def ready():
    """
    Ready once settings resolve (error view importable, error code valid).
    """
    s = get_settings()
    return {
        "status": "ready",
        "error_code": s.error_code,
        "error_view": type(s.error_view).__name__,
    }
