from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ferryman.core.observability.metrics import snapshot_validations

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
def prometheus_metrics() -> Response:
    """Prometheus scrape: validation outcomes per validator plus HTTP metrics."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/api/v1/metrics/validations")
def validations_snapshot(validator: Optional[str] = None):
    """
    In-process validation counters. With ?validator=<name suffix> only that
    validator's outcomes are returned.
    """
    snap = snapshot_validations()
    if validator is None:
        return {"validations": snap}
    return {
        "validator": validator,
        "validations": {
            k: v for k, v in snap.items() if "|" in k and k.split("|", 1)[0].endswith(validator)
        },
    }
