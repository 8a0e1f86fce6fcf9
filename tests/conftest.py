import pytest
from fastapi.testclient import TestClient

from ferryman.api.endpoints.things import reset_things
from ferryman.api.main import app
from ferryman.core.observability.metrics import reset_metrics
from ferryman.core.settings import reset_settings

VALID_UUID = "5f0c7a8e-1b2c-4d3e-9f8a-0123456789ab"
OTHER_UUID = "0b9d3c1e-7a6f-4e2d-8c1b-fedcba987654"


@pytest.fixture(autouse=True)
def _clean_state(monkeypatch):
    # Settings, counters and the demo store are process-global.
    for key in ("FERRYMAN_ERROR_CODE", "FERRYMAN_ERROR_VIEW", "FERRYMAN_CONFIG_FILE"):
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    reset_metrics()
    reset_things()
    yield
    reset_settings()


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def valid_params():
    return {"user_id": "abc123", "list_of_ids": [VALID_UUID, OTHER_UUID]}


@pytest.fixture()
def invalid_params():
    return {"user_id": None, "list_of_ids": ["test", "not a uuid"]}
