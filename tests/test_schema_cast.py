from typing import List, Optional

import pytest
from pydantic import Field

from ferryman.core.schema import Schema


class Order(Schema):
    quantity: Optional[int] = None
    sku: Optional[str] = None
    labels: Optional[List[str]] = None


class StrictOrder(Schema):
    quantity: int = Field(gt=0)
    sku: str


def test_cast_coerces_permitted_fields_only():
    cs = Order.cast({"quantity": "3", "sku": "A-1", "extra": "ignored"}, ["quantity"])

    assert cs.valid is True
    assert cs.changes == {"quantity": 3}
    assert cs.params["extra"] == "ignored"


def test_cast_marks_uncastable_values_invalid():
    cs = Order.cast({"quantity": "many", "labels": ["ok", 5]}, ["quantity", "labels"])

    assert cs.traverse_errors() == {
        "quantity": ["is invalid"],
        "labels": ["is invalid"],
    }
    assert cs.errors[0][1][1]["validation"] == "cast"


def test_cast_treats_empty_string_as_missing():
    cs = Order.cast({"sku": ""}, ["sku"]).validate_required("sku")
    assert cs.changes == {}
    assert cs.traverse_errors() == {"sku": ["can't be blank"]}


def test_cast_rejects_unknown_permitted_field():
    with pytest.raises(ValueError):
        Order.cast({}, ["nope"])


def test_cast_accepts_none_params():
    cs = Order.cast(None, ["sku"])
    assert cs.valid is True
    assert cs.changes == {}


def test_cast_rejects_non_mapping_params():
    with pytest.raises(TypeError):
        Order.cast(["sku"], ["sku"])


def test_changeset_maps_pydantic_errors_per_field():
    cs = StrictOrder.changeset({"quantity": 0})

    assert cs.valid is False
    errors = cs.traverse_errors()
    assert set(errors) == {"quantity", "sku"}
    assert errors["sku"] == ["Field required"]


def test_changeset_valid_keeps_changes():
    cs = StrictOrder.changeset({"quantity": "2", "sku": "A-1"})

    assert cs.valid is True
    assert cs.changes == {"quantity": 2, "sku": "A-1"}
    assert cs.apply_changes() == StrictOrder(quantity=2, sku="A-1")


class Signup(Schema):
    user_id: str
    plan: Optional[str] = "free"


@pytest.mark.parametrize("blank", [None, ""])
def test_blank_value_in_required_field_is_cant_be_blank(blank):
    cs = Signup.cast({"user_id": blank}, ["user_id"]).validate_required(["user_id"])

    assert cs.traverse_errors() == {"user_id": ["can't be blank"]}
    assert cs.changes == {}


def test_none_clears_a_field_with_a_default():
    cs = Signup.cast({"plan": None}, ["plan"])

    assert cs.valid is True
    assert cs.changes == {"plan": None}
