from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from ferryman.core.changeset import Changeset

# Values treated as "not given" when casting.
EMPTY_VALUES = ("",)


class Schema(BaseModel):
    """
    Field shape of a validator.

    Example:

        class CreateUser(Schema):
            assigned_user_id: Optional[str] = None
            outbounds: Optional[List[str]] = None

            @classmethod
            def validate(cls, request, params):
                return (
                    cls.cast(params, ["assigned_user_id", "outbounds"])
                    .validate_required(["outbounds"])
                )
    """

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def cast(cls, params: Optional[Mapping[str, Any]], permitted: Iterable[str]) -> Changeset:
        params = _normalize_params(params)
        cs = Changeset(schema=cls, params=params)

        fields = cls.model_fields
        for name in permitted:
            if name not in fields:
                raise ValueError(f"Unknown field {name!r} for {cls.__name__}")
            if name not in params:
                continue

            value = params[name]
            if value in EMPTY_VALUES:
                value = None

            # None casts to None for every field type; blankness is validate_required's call.
            if value is None:
                if cs.get_field(name) is not None:
                    cs.changes[name] = None
                continue

            try:
                cast_value = _adapter(cls, name).validate_python(value)
            except ValidationError:
                cs.add_error(name, "is invalid", validation="cast", type=_type_name(fields[name].annotation))
                continue

            if cast_value != cs.get_field(name):
                cs.changes[name] = cast_value
        return cs

    @classmethod
    def changeset(cls, params: Optional[Mapping[str, Any]]) -> Changeset:
        """
        Whole-model validation using the schema's pydantic constraints.
        """
        params = _normalize_params(params)
        cs = Changeset(schema=cls, params=params)
        try:
            instance = cls.model_validate(params)
        except ValidationError as e:
            for err in e.errors():
                loc = err.get("loc") or ("__root__",)
                opts: Dict[str, Any] = {"validation": err.get("type")}
                opts.update(err.get("ctx") or {})
                cs.add_error(str(loc[0]), err.get("msg", "is invalid"), **opts)
            return cs

        cs.changes = instance.model_dump(exclude_unset=True)
        return cs


def _normalize_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if params is None:
        return {}
    if isinstance(params, BaseModel):
        return params.model_dump(exclude_unset=True)
    if not isinstance(params, Mapping):
        raise TypeError(f"params must be a mapping, got {type(params).__name__}")
    return {str(k): v for k, v in params.items()}


@lru_cache(maxsize=512)
def _adapter(schema: type, name: str) -> TypeAdapter:
    return TypeAdapter(schema.model_fields[name].annotation)


def _type_name(annotation: Any) -> str:
    return getattr(annotation, "__name__", None) or str(annotation)
