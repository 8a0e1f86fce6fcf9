from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from ferryman.core.changeset import Changeset
from ferryman.core.request import RequestValidator
from ferryman.core.response import Responses, response
from ferryman.core.schema import Schema

UUID_RE = re.compile(r"[\w]{8}-?[\w]{4}-?[\w]{4}-?[\w]{4}-?[\w]{12}")

THING_STATES = ("draft", "active", "archived")


def validate_uuid_list(field: str, ids: List[str]) -> List[tuple]:
    invalid = [i for i in ids if not UUID_RE.search(i)]
    if not invalid:
        return []
    return [(field, f"invalid format: {', '.join(invalid)}")]


class CreateThing(Schema):
    user_id: Optional[str] = None
    list_of_ids: Optional[List[str]] = None

    @classmethod
    def validate(cls, request: Any, params: Dict[str, Any]) -> Changeset:
        return (
            cls.cast(params, ["user_id", "list_of_ids"])
            .validate_required(["user_id", "list_of_ids"])
            .validate_length("list_of_ids", min=1)
            .validate_change("list_of_ids", validate_uuid_list)
        )


class UpdateThing(RequestValidator):
    status_code = "bad_request"

    name: Optional[str] = None
    state: Optional[str] = None

    @classmethod
    def validate(cls, request: Any, thing_id: str, params: Dict[str, Any]) -> Changeset:
        cs = (
            cls.cast(params, ["name", "state"])
            .validate_length("name", min=3, max=64)
            .validate_inclusion("state", THING_STATES)
        )
        if not UUID_RE.search(thing_id or ""):
            cs.add_error("thing_id", "invalid format: %{value}", value=thing_id)
        return cs


class ThingOut(Schema):
    id: str
    user_id: str
    list_of_ids: List[str]
    name: Optional[str] = None
    state: str = "draft"


class ThingResponses(Responses):
    summary = "Thing create/update responses"

    @response("created", description="The stored thing")
    class Stored(ThingOut):
        pass

    @response(422, description="Validation failed", example={"errors": {"user_id": ["can't be blank"]}})
    class Invalid(Schema):
        errors: Dict[str, List[str]]

    @response("not_found", description="Unknown thing", example={"detail": "Thing not found"}, content_type="application/json")
    class Missing(Schema):
        detail: str
