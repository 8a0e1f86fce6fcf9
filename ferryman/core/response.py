"""
Response declarations for validators.

Responses are declared per status code, numeric or symbolic, on nested
schemas inside a Responses container. They feed generated API docs
(FastAPI `responses=`) and tests.

    class CreateThingResponses(Responses):
        summary = "Creates a thing"

        @response("created")
        class Body(Schema):
            id: str

        @response(404, description="Unknown owner", example={"detail": "Not found"},
                  content_type="application/json")
        class Missing(Schema):
            detail: str

    CreateThingResponses.Created.__status__   # 201
    CreateThingResponses.NotFound.__status__  # 404
"""
from __future__ import annotations

from http import HTTPStatus
from typing import Any, Callable, Dict, Optional, TypeVar

from pydantic import BaseModel

from ferryman.core.errors import ConfigurationError
from ferryman.core.status import StatusLike, camelize, reason_name, status_code

T = TypeVar("T", bound=type)

DEFAULT_CONTENT_TYPE = "application/json"


def response(
    status: StatusLike,
    *,
    description: Optional[str] = None,
    content_type: Optional[str] = None,
    example: Any = None,
) -> Callable[[T], T]:
    code = status_code(status)

    def decorator(schema: T) -> T:
        setattr(schema, "__status__", code)
        setattr(schema, "__description__", description)
        setattr(schema, "__content_type__", content_type)
        setattr(schema, "__example__", example)
        return schema

    return decorator


class Responses:
    summary: Optional[str] = None

    __responses__: Dict[int, type] = {}

    def __init_subclass__(cls, **kwargs: Any):
        super().__init_subclass__(**kwargs)

        declared: Dict[int, type] = {}
        for value in list(vars(cls).values()):
            if not isinstance(value, type):
                continue
            code = vars(value).get("__status__")
            if code is None:
                continue
            if code in declared:
                raise ConfigurationError(
                    f"{cls.__qualname__} declares status {code} twice "
                    f"({declared[code].__name__}, {value.__name__})"
                )
            declared[code] = value

        for code, schema in declared.items():
            setattr(cls, camelize(reason_name(code)), schema)
        cls.__responses__ = declared

    @classmethod
    def get_summary(cls) -> str:
        return cls.summary or f"Response definitions for {cls.__qualname__}"

    @classmethod
    def for_status(cls, status: StatusLike) -> Optional[type]:
        return cls.__responses__.get(status_code(status))

    @classmethod
    def openapi(cls) -> Dict[int, Dict[str, Any]]:
        out: Dict[int, Dict[str, Any]] = {}
        for code, schema in sorted(cls.__responses__.items()):
            entry: Dict[str, Any] = {
                "description": getattr(schema, "__description__", None) or HTTPStatus(code).phrase,
            }
            if isinstance(schema, type) and issubclass(schema, BaseModel):
                entry["model"] = schema

            content_type = getattr(schema, "__content_type__", None)
            example = getattr(schema, "__example__", None)
            if content_type or example is not None:
                media: Dict[str, Any] = {}
                if example is not None:
                    media["example"] = example
                entry["content"] = {content_type or DEFAULT_CONTENT_TYPE: media}
            out[code] = entry
        return out
