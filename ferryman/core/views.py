from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, List

from ferryman.core.changeset import Changeset, interpolate
from ferryman.core.errors import TemplateNotFoundError


class ChangesetView:
    """
    Default error view: {"errors": {field: [message, ...]}}.
    """

    def translate_error(self, message: str, opts: Dict[str, Any]) -> str:
        return interpolate(message, opts)

    def translate_errors(self, changeset: Any) -> Dict[str, List[Any]]:
        if isinstance(changeset, Changeset):
            return changeset.traverse_errors(self.translate_error)
        return errors_map(changeset)

    def render(self, template: str, **assigns: Any) -> Dict[str, Any]:
        if template == "error.json":
            return {"errors": self.translate_errors(assigns.get("changeset"))}
        raise TemplateNotFoundError(view=type(self).__name__, template=template)


def errors_map(result: Any) -> Dict[str, List[Any]]:
    """
    Best-effort {field: [message]} for results that are not a Changeset:
    mappings / objects carrying an `errors` dict or a list of (field, message).
    """
    if result is None:
        return {}
    if hasattr(result, "traverse_errors"):
        return result.traverse_errors()

    errors = result.get("errors") if isinstance(result, Mapping) else getattr(result, "errors", None)
    if not errors:
        return {}

    if isinstance(errors, Mapping):
        return {str(k): list(v) if isinstance(v, (list, tuple)) else [v] for k, v in errors.items()}

    out: Dict[str, List[Any]] = {}
    for item in errors:
        if isinstance(item, (list, tuple)) and len(item) == 2:
            name, message = item
            if isinstance(message, tuple):
                message = interpolate(message[0], dict(message[1]))
            out.setdefault(str(name), []).append(message)
        else:
            out.setdefault("base", []).append(item)
    return out
