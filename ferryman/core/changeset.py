from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Pattern, Sequence, Tuple, Union

ErrorOpts = Dict[str, Any]
ErrorEntry = Tuple[str, Tuple[str, ErrorOpts]]

_PLACEHOLDER = re.compile(r"%\{(\w+)\}")


def interpolate(message: str, opts: ErrorOpts) -> str:
    """Replace %{key} placeholders with values from opts."""
    return _PLACEHOLDER.sub(lambda m: str(opts.get(m.group(1), m.group(0))), message)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


@dataclass
class Changeset:
    """
    Result of casting and validating request params.

    errors keeps insertion order as (field, (message, opts)) pairs so that
    rendering is deterministic.
    """

    schema: Optional[type] = None
    params: Dict[str, Any] = field(default_factory=dict)
    changes: Dict[str, Any] = field(default_factory=dict)
    errors: List[ErrorEntry] = field(default_factory=list)
    required: List[str] = field(default_factory=list)
    action: Optional[str] = None

    @property
    def valid(self) -> bool:
        return not self.errors

    # ------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------
    def get_change(self, name: str, default: Any = None) -> Any:
        return self.changes.get(name, default)

    def get_field(self, name: str, default: Any = None) -> Any:
        if name in self.changes:
            return self.changes[name]
        if self.schema is not None:
            fields = getattr(self.schema, "model_fields", {}) or {}
            info = fields.get(name)
            if info is not None and not info.is_required():
                return info.get_default(call_default_factory=True)
        return default

    def has_error(self, name: str) -> bool:
        return any(f == name for f, _ in self.errors)

    # ------------------------------------------------------------
    # Validations (each returns self so calls chain)
    # ------------------------------------------------------------
    def add_error(self, name: str, message: str, **opts: Any) -> "Changeset":
        self.errors.append((name, (message, dict(opts))))
        return self

    def validate_required(self, fields: Union[str, Iterable[str]], *, message: str = "can't be blank") -> "Changeset":
        names = [fields] if isinstance(fields, str) else list(fields)
        for name in names:
            if name not in self.required:
                self.required.append(name)
            if self.has_error(name):
                continue
            if _is_blank(self.get_field(name)):
                self.add_error(name, message, validation="required")
        return self

    def validate_change(self, name: str, fn: Callable[[str, Any], Sequence[Tuple[str, Any]]]) -> "Changeset":
        """
        Runs fn(name, value) when the field changed to a non-None value.
        fn returns a list of (field, message) or (field, (message, opts)).
        """
        value = self.changes.get(name)
        if value is None:
            return self

        for err_field, err in fn(name, value) or []:
            if isinstance(err, tuple):
                message, opts = err
                self.add_error(err_field, message, **dict(opts))
            else:
                self.add_error(err_field, str(err))
        return self

    def validate_length(
        self,
        name: str,
        *,
        min: Optional[int] = None,
        max: Optional[int] = None,
        is_: Optional[int] = None,
        message: Optional[str] = None,
    ) -> "Changeset":
        def check(field_name: str, value: Any) -> List[Tuple[str, Tuple[str, ErrorOpts]]]:
            if isinstance(value, str):
                kind, count = "string", len(value)
            elif isinstance(value, (list, tuple, set, frozenset, dict)):
                kind, count = "list", len(value)
            else:
                return []

            for bound, op, limit in (("is", "eq", is_), ("min", "ge", min), ("max", "le", max)):
                if limit is None:
                    continue
                failed = (
                    (op == "eq" and count != limit)
                    or (op == "ge" and count < limit)
                    or (op == "le" and count > limit)
                )
                if failed:
                    opts = {"count": limit, "validation": "length", "kind": bound, "type": kind}
                    return [(field_name, (message or _length_message(kind, bound), opts))]
            return []

        return self.validate_change(name, check)

    def validate_format(self, name: str, pattern: Union[str, Pattern[str]], *, message: str = "has invalid format") -> "Changeset":
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern

        def check(field_name: str, value: Any) -> List[Tuple[str, Tuple[str, ErrorOpts]]]:
            if isinstance(value, str) and regex.search(value):
                return []
            return [(field_name, (message, {"validation": "format"}))]

        return self.validate_change(name, check)

    def validate_inclusion(self, name: str, values: Iterable[Any], *, message: str = "is invalid") -> "Changeset":
        allowed = list(values)

        def check(field_name: str, value: Any) -> List[Tuple[str, Tuple[str, ErrorOpts]]]:
            if value in allowed:
                return []
            return [(field_name, (message, {"validation": "inclusion", "enum": allowed}))]

        return self.validate_change(name, check)

    # ------------------------------------------------------------
    # Output
    # ------------------------------------------------------------
    def apply_changes(self) -> Any:
        if self.schema is None:
            return dict(self.changes)
        return self.schema.model_construct(**self.changes)

    def traverse_errors(self, fn: Optional[Callable[[str, ErrorOpts], Any]] = None) -> Dict[str, List[Any]]:
        translate = fn or interpolate
        out: Dict[str, List[Any]] = {}
        for name, (message, opts) in self.errors:
            out.setdefault(name, []).append(translate(message, opts))
        return out


def _length_message(kind: str, bound: str) -> str:
    if kind == "string":
        return {
            "is": "should be %{count} character(s)",
            "min": "should be at least %{count} character(s)",
            "max": "should be at most %{count} character(s)",
        }[bound]
    return {
        "is": "should have %{count} item(s)",
        "min": "should have at least %{count} item(s)",
        "max": "should have at most %{count} item(s)",
    }[bound]
