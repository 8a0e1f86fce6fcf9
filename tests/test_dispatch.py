import asyncio
import inspect
import json
import logging
from typing import Any, Dict, Optional

import pytest

from ferryman.api.validators.things import CreateThing
from ferryman.core.changeset import Changeset
from ferryman.core.dispatch import ValidationTarget, judge, target_of, validate_with
from ferryman.core.errors import ConfigurationError
from ferryman.core.observability.metrics import snapshot_validations
from ferryman.core.request import RequestValidator
from ferryman.core.schema import Schema
from ferryman.core.settings import configure


def _json(resp):
    return json.loads(resp.body)


class ErrorView:
    """Renders the same shape as the default view, tagged so tests can tell them apart."""

    def translate_errors(self, changeset):
        return changeset.traverse_errors(lambda msg, opts: msg)

    def render(self, template, **assigns):
        assert template == "error.json"
        return {"errors": self.translate_errors(assigns["changeset"]), "view": "custom"}


def conn_responder(conn, status, body):
    # Plain-dict "conn", mirrors a framework-less handler
    return {**conn, "status_code": status, "body": body}


def test_valid_input_runs_original_body(valid_params):
    calls = []

    @validate_with(CreateThing)
    def create(conn, params):
        calls.append(params)
        return {"created": params["user_id"]}

    assert create({}, valid_params) == {"created": "abc123"}
    assert calls == [valid_params]


def test_invalid_input_never_runs_body(invalid_params):
    calls = []

    @validate_with(CreateThing)
    def create(conn, params):
        calls.append(params)
        return "ran"

    resp = create({}, invalid_params)

    assert calls == []
    assert resp.status_code == 422
    assert _json(resp) == {
        "errors": {
            "user_id": ["can't be blank"],
            "list_of_ids": ["invalid format: test, not a uuid"],
        }
    }


def test_custom_view_responder_and_code(invalid_params):
    configure(error_view=ErrorView, error_code=400, responder=conn_responder)

    @validate_with(CreateThing)
    def create(conn, params):
        return "ran"

    assert create({"path": "/things"}, invalid_params) == {
        "path": "/things",
        "status_code": 400,
        "body": {
            "errors": {
                "user_id": ["can't be blank"],
                "list_of_ids": ["invalid format: test, not a uuid"],
            },
            "view": "custom",
        },
    }


def test_error_code_env_applies_to_existing_wrappers(monkeypatch, invalid_params):
    @validate_with(CreateThing)
    def create(conn, params):
        return "ran"

    monkeypatch.setenv("FERRYMAN_ERROR_CODE", "unprocessable_entity")
    assert create({}, invalid_params).status_code == 422

    monkeypatch.setenv("FERRYMAN_ERROR_CODE", "409")
    assert create({}, invalid_params).status_code == 409


def test_wrapper_preserves_metadata():
    def create(conn, params: Dict[str, Any], *, flag: bool = False):
        """Creates things."""
        return params

    wrapped = validate_with(CreateThing)(create)

    assert wrapped.__name__ == "create"
    assert wrapped.__doc__ == "Creates things."
    assert wrapped.__wrapped__ is create
    assert inspect.signature(wrapped) == inspect.signature(create)
    assert target_of(wrapped).request is CreateThing


def test_unannotated_function_is_untouched():
    def create(conn, params):
        return params

    assert target_of(create) is None
    assert create({}, {"x": 1}) == {"x": 1}


def test_async_handler_and_async_validator(valid_params, invalid_params):
    class AsyncCreate:
        @staticmethod
        async def validate(conn, params):
            return CreateThing.validate(conn, params)

    @validate_with(AsyncCreate)
    async def create(conn, params):
        return {"ok": True}

    assert inspect.iscoroutinefunction(create)
    assert asyncio.run(create({}, valid_params)) == {"ok": True}
    assert asyncio.run(create({}, invalid_params)).status_code == 422


def test_async_validator_requires_async_handler():
    class AsyncOnly:
        @staticmethod
        async def validate(conn, params):
            return {"valid": True}

    @validate_with(AsyncOnly)
    def create(conn, params):
        return "ran"

    with pytest.raises(ConfigurationError):
        create({}, {})


def test_mapping_results_are_accepted():
    class MapValidator:
        @staticmethod
        def validate(conn, params):
            if params.get("ok"):
                return {"valid?": True}
            return {"valid?": False, "errors": {"ok": ["must be set"]}}

    @validate_with(MapValidator)
    def handler(conn, params):
        return "ran"

    assert handler({}, {"ok": 1}) == "ran"
    resp = handler({}, {})
    assert resp.status_code == 422
    assert _json(resp) == {"errors": {"ok": ["must be set"]}}


def test_truthy_but_not_true_is_invalid():
    class Sloppy:
        @staticmethod
        def validate(conn, params):
            return {"valid": 1, "errors": []}

    @validate_with(Sloppy)
    def handler(conn, params):
        return "ran"

    resp = handler({}, {})
    assert resp.status_code == 422
    assert _json(resp) == {"errors": {}}


def test_malformed_result_renders_error_and_warns(caplog):
    class Broken:
        @staticmethod
        def validate(conn, params):
            return "yes"

    @validate_with(Broken)
    def handler(conn, params):
        return "ran"

    with caplog.at_level(logging.WARNING, logger="ferryman.dispatch"):
        resp = handler({}, {})

    assert resp.status_code == 422
    assert _json(resp) == {"errors": {}}
    assert "treating as invalid" in caplog.text
    assert snapshot_validations()["outcome_malformed"] == 1


def test_validator_exceptions_propagate():
    class Exploding:
        @staticmethod
        def validate(conn, params):
            raise RuntimeError("validator crashed")

    @validate_with(Exploding)
    def handler(conn, params):
        return "ran"

    with pytest.raises(RuntimeError, match="validator crashed"):
        handler({}, {})


class Update(RequestValidator):
    status_code = "bad_request"

    name: Optional[str] = None

    @classmethod
    def validate(cls, conn, thing_id, params):
        cs = cls.cast(params, ["name"]).validate_required("name")
        if thing_id != "t1":
            cs.add_error("thing_id", "unknown")
        return cs


def test_request_validator_status_and_unused_args():
    seen = []

    @validate_with(Update)
    def update(conn, thing_id, _audit, params, _force=False):
        seen.append((thing_id, params))
        return "updated"

    assert update({}, "t1", object(), {"name": "n"}) == "updated"

    resp = update({}, "t2", object(), {})
    assert resp.status_code == 400
    assert _json(resp) == {"errors": {"name": ["can't be blank"], "thing_id": ["unknown"]}}
    assert seen == [("t1", {"name": "n"})]


def test_validator_status_beats_configured_code():
    configure(error_code=418)

    @validate_with(Update)
    def update(conn, thing_id, params):
        return "updated"

    assert update({}, "t2", {}).status_code == 400


def test_keyword_calls_bind_in_declaration_order(valid_params):
    received = []

    class Recorder:
        @staticmethod
        def validate(conn, params):
            received.append((conn, params))
            return Changeset()

    @validate_with(Recorder)
    def handler(conn, params):
        return "ran"

    assert handler(params=valid_params, conn="c") == "ran"
    assert received == [("c", valid_params)]


def test_validation_pair_and_bad_targets():
    target = ValidationTarget.coerce({"request": CreateThing, "response": None})
    assert target.request is CreateThing
    assert ValidationTarget.coerce((CreateThing, None)) == target

    with pytest.raises(ConfigurationError):
        ValidationTarget.coerce(object())
    with pytest.raises(ConfigurationError):
        ValidationTarget.coerce({"response": CreateThing})
    with pytest.raises(ConfigurationError):
        ValidationTarget.coerce({"request": CreateThing, "extra": 1})


def test_judge_outcomes():
    assert judge(Changeset()) == "valid"
    assert judge(Changeset().add_error("a", "b")) == "invalid"
    assert judge({"valid": True}) == "valid"
    assert judge({"valid": False, "errors": {}}) == "invalid"
    assert judge(None) == "malformed"


def test_metrics_count_outcomes(valid_params, invalid_params):
    @validate_with(CreateThing)
    def create(conn, params):
        return "ran"

    create({}, valid_params)
    create({}, invalid_params)
    create({}, invalid_params)

    snap = snapshot_validations()
    assert snap["validations_total"] == 3
    assert snap["outcome_valid"] == 1
    assert snap["outcome_invalid"] == 2


def test_schema_without_validate_is_rejected_at_declaration():
    class NoValidate(Schema):
        user_id: Optional[str] = None

    with pytest.raises(ConfigurationError, match="does not define validate"):
        ValidationTarget.coerce(NoValidate)

    with pytest.raises(ConfigurationError):
        validate_with(NoValidate)

    # Subclasses of a validator inherit its validate.
    class Child(CreateThing):
        pass

    assert ValidationTarget.coerce(Child).request is Child
