from __future__ import annotations

from collections import Counter
from typing import Dict

from prometheus_client import Counter as PromCounter

OUTCOME_VALID = "valid"
OUTCOME_INVALID = "invalid"
OUTCOME_MALFORMED = "malformed"

# In-process counters (snapshots for tests / debug endpoints)
_VALIDATIONS = Counter()

_PROM_VALIDATIONS = PromCounter(
    "ferryman_validations_total",
    "Validator dispatch outcomes",
    ["validator", "outcome"],
)


def reset_metrics() -> None:
    """
    Test helper: clears in-process counters to avoid cross-test leakage.
    Prometheus counters are process-global and are not reset.
    """
    _VALIDATIONS.clear()


def inc_validation(validator: str, outcome: str) -> None:
    v = validator or "unknown"
    _VALIDATIONS["validations_total"] += 1
    _VALIDATIONS[f"outcome_{outcome}"] += 1
    _VALIDATIONS[f"{v}|{outcome}"] += 1
    _PROM_VALIDATIONS.labels(validator=v, outcome=outcome).inc()


def snapshot_validations() -> Dict[str, int]:
    return dict(_VALIDATIONS)
