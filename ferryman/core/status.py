from __future__ import annotations

from http import HTTPStatus
from typing import Union

from ferryman.core.errors import InvalidStatusError

StatusLike = Union[int, str, HTTPStatus]

# Reason names whose HTTPStatus member was renamed in newer Python releases.
_REASON_OVERRIDES = {
    413: "request_entity_too_large",
    414: "request_uri_too_long",
    416: "requested_range_not_satisfiable",
    422: "unprocessable_entity",
}

_NAME_ALIASES = {v: k for k, v in _REASON_OVERRIDES.items()}


def status_code(status: StatusLike) -> int:
    """
    Resolve a numeric or symbolic status into its integer code.

      status_code(404)               -> 404
      status_code("not_found")       -> 404
      status_code(HTTPStatus.OK)     -> 200
    """
    if isinstance(status, bool):
        raise InvalidStatusError(status)

    if isinstance(status, int):
        try:
            return int(HTTPStatus(status))
        except ValueError:
            raise InvalidStatusError(status) from None

    if isinstance(status, str):
        raw = status.strip()
        if raw.isdigit():
            return status_code(int(raw))

        name = raw.lower().replace("-", "_").replace(" ", "_")
        if name in _NAME_ALIASES:
            return _NAME_ALIASES[name]
        try:
            return int(HTTPStatus[name.upper()])
        except KeyError:
            raise InvalidStatusError(status) from None

    raise InvalidStatusError(status)


def reason_name(code: StatusLike) -> str:
    """Snake-case reason name for a status: 422 -> "unprocessable_entity"."""
    c = status_code(code)
    if c in _REASON_OVERRIDES:
        return _REASON_OVERRIDES[c]
    return HTTPStatus(c).name.lower()


def camelize(name: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)
