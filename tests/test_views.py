import pytest

from ferryman.core.changeset import Changeset
from ferryman.core.errors import TemplateNotFoundError
from ferryman.core.views import ChangesetView, errors_map


def test_renders_changeset_errors():
    cs = Changeset().add_error("name", "should be at least %{count} character(s)", count=3)
    assert ChangesetView().render("error.json", changeset=cs) == {
        "errors": {"name": ["should be at least 3 character(s)"]}
    }


def test_unknown_template():
    with pytest.raises(TemplateNotFoundError):
        ChangesetView().render("show.json", changeset=Changeset())


def test_errors_map_shapes():
    assert errors_map(None) == {}
    assert errors_map({"errors": {"a": "bad", "b": ["x", "y"]}}) == {"a": ["bad"], "b": ["x", "y"]}
    assert errors_map({"errors": [("a", "bad"), ("a", ("needs %{n}", {"n": 2})), "loose"]}) == {
        "a": ["bad", "needs 2"],
        "base": ["loose"],
    }


def test_errors_map_reads_attributes():
    class Result:
        valid = False
        errors = {"field": ["wrong"]}

    assert errors_map(Result()) == {"field": ["wrong"]}
