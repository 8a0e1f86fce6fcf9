"""
Thing endpoints.

  /api/v1/things  : decorator form (validate_with)
  /api/v2/things  : controller form (Controller + validated / __validate__)
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, Request

from ferryman.api.validators.things import CreateThing, ThingResponses, UpdateThing
from ferryman.core.collector import Controller, validated
from ferryman.core.dispatch import responses_for, validate_with

log = logging.getLogger("ferryman.things")

# In-memory store; the demo app has no persistence.
_THINGS: Dict[str, Dict[str, Any]] = {}


def reset_things() -> None:
    """Test helper."""
    _THINGS.clear()


def _store(params: Dict[str, Any]) -> Dict[str, Any]:
    thing = CreateThing.cast(params, ["user_id", "list_of_ids"]).apply_changes()
    thing_id = str(uuid.uuid4())
    _THINGS[thing_id] = {
        "id": thing_id,
        "user_id": thing.user_id,
        "list_of_ids": list(thing.list_of_ids or []),
        "name": None,
        "state": "draft",
    }
    log.info("stored thing id=%s user_id=%s", thing_id, thing.user_id)
    return _THINGS[thing_id]


# ------------------------------------------------------------
# v1: decorator form
# ------------------------------------------------------------
router_v1 = APIRouter(prefix="/api/v1/things", tags=["things"])


@validate_with((CreateThing, ThingResponses))
async def create_thing(request: Request, params: Dict[str, Any] = Body(...)):
    return _store(params)


router_v1.add_api_route(
    "",
    create_thing,
    methods=["POST"],
    status_code=201,
    summary=ThingResponses.get_summary(),
    responses=responses_for(create_thing),
)


# ------------------------------------------------------------
# v2: controller form
# ------------------------------------------------------------
class ThingsController(Controller):
    @staticmethod
    @validated({"request": CreateThing, "response": ThingResponses})
    def create(request: Request, params: Dict[str, Any] = Body(...)):
        return _store(params)

    __validate__ = UpdateThing

    @staticmethod
    def update(request: Request, thing_id: str, params: Dict[str, Any] = Body(...), _dry_run: bool = False):
        thing = _THINGS.get(thing_id)
        if thing is None:
            raise HTTPException(status_code=404, detail="Thing not found")

        changes = UpdateThing.cast(params, ["name", "state"]).changes
        if _dry_run:
            return {**thing, **changes}
        thing.update(changes)
        return thing

    @staticmethod
    def show(thing_id: str):
        thing = _THINGS.get(thing_id)
        if thing is None:
            raise HTTPException(status_code=404, detail="Thing not found")
        return thing


router_v2 = APIRouter(prefix="/api/v2/things", tags=["things"])
router_v2.add_api_route(
    "",
    ThingsController.create,
    methods=["POST"],
    status_code=201,
    responses=responses_for(ThingsController.create),
)
router_v2.add_api_route("/{thing_id}", ThingsController.update, methods=["PUT"])
router_v2.add_api_route("/{thing_id}", ThingsController.show, methods=["GET"])
