"""
Class-body collection of annotated handlers.

Functions are marked either with @validated(Validator) or by assigning
`__validate__ = Validator` in the class body right above the definition.
While the class body executes, every definition is recorded; when the class
object is created, each annotated function is replaced by a wrapped
definition with the same signature (see ferryman.core.dispatch.wrap).

    class ThingsController(Controller):
        @staticmethod
        @validated(Validators.NewThing.Create)
        def create(request, params):
            ...

        __validate__ = Validators.NewThing.Update
        @staticmethod
        def update(request, thing_id, params):
            ...

Removing the annotation leaves the function untouched.
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from ferryman.core.dispatch import TARGET_ATTR, ValidationTarget, wrap

log = logging.getLogger("ferryman.collector")

F = TypeVar("F", bound=Callable[..., Any])

ANNOTATION_KEY = "__validate__"
RECORDS_ATTR = "__ferryman_records__"

# Wrappers the finalizer knows how to rebuild around the validated function.
_SUPPORTED_KINDS = ("function", "staticmethod", "classmethod")


def validated(target: Any) -> Callable[[F], F]:
    """
    Marks the decorated function for wrapping by its controller class.
    The function itself is returned unchanged.
    """
    coerced = ValidationTarget.coerce(target)

    def decorator(func: F) -> F:
        fn = getattr(func, "__func__", func)
        setattr(fn, TARGET_ATTR, coerced)
        return func

    return decorator


@dataclass
class Definition:
    value: Any
    func: Optional[Callable[..., Any]]
    kind: str
    arity: int
    target: Optional[ValidationTarget] = None


@dataclass
class ValidationRecord:
    owner: str
    name: str
    arity: int
    access: str
    kind: str
    guards: Tuple[str, ...]
    body: Callable[..., Any]
    target: ValidationTarget
    consumed: bool = field(default=False, compare=False)


def _unwrap(value: Any) -> Tuple[Optional[Callable[..., Any]], str]:
    if isinstance(value, staticmethod):
        return value.__func__, "staticmethod"
    if isinstance(value, classmethod):
        return value.__func__, "classmethod"
    if inspect.isfunction(value):
        return value, "function"
    if isinstance(value, property):
        return value.fget, "property"
    inner = getattr(value, "func", None) or getattr(value, "__func__", None)
    if inspect.isfunction(inner):
        return inner, type(value).__name__
    return None, ""


def _arity(func: Callable[..., Any], kind: str) -> int:
    params = [
        p
        for p in inspect.signature(func).parameters.values()
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    if kind in ("function", "classmethod", "property") and params:
        return len(params) - 1
    return len(params)


class DefinitionNamespace(dict):
    """Class-body namespace that records every function definition."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.definitions: Dict[str, List[Definition]] = {}
        self.pending: Optional[ValidationTarget] = None
        self.last: Optional[Tuple[str, int, ValidationTarget]] = None

    def __setitem__(self, key: str, value: Any) -> None:
        if key == ANNOTATION_KEY:
            self.pending = ValidationTarget.coerce(value)
            return

        func, kind = _unwrap(value)
        if func is not None and not (key.startswith("__") and key.endswith("__")):
            arity = _arity(func, kind)
            target = self.is_validated(func, key, arity)
            self.definitions.setdefault(key, []).append(
                Definition(value=value, func=func, kind=kind, arity=arity, target=target)
            )
            if target is not None:
                self.last = (key, arity, target)
            self.pending = None

        super().__setitem__(key, value)

    def is_validated(self, func: Callable[..., Any], name: str, arity: int) -> Optional[ValidationTarget]:
        tagged = getattr(func, TARGET_ATTR, None)
        if tagged is not None:
            return tagged
        if self.pending is not None:
            return self.pending
        # A later head with the same name and arity keeps the previous head's target.
        if self.last is not None and self.last[0] == name and self.last[1] == arity:
            return self.last[2]
        return None


def collect(namespace: DefinitionNamespace, owner: str) -> List[ValidationRecord]:
    records: List[ValidationRecord] = []

    for name, defs in namespace.definitions.items():
        annotated = [d for d in defs if d.target is not None]
        if not annotated:
            continue

        last = defs[-1]
        if namespace.get(name) is not last.value:
            # Replaced by a non-function after the last definition.
            continue

        guards = _extra_clauses(defs)
        if guards:
            found = ", ".join(f"`{g}`" for g in guards)
            log.warning(
                "[ferryman] Unable to wrap `%s.%s/%s` due to additional function-level clauses: %s "
                "-- please remove @validated",
                owner,
                name,
                last.arity,
                found,
            )
            continue

        if last.target is None:
            log.warning(
                "[ferryman] `%s.%s/%s` was redefined without an annotation; leaving it unwrapped",
                owner,
                name,
                last.arity,
            )
            continue

        records.append(
            ValidationRecord(
                owner=owner,
                name=name,
                arity=last.arity,
                access="private" if name.startswith("_") else "public",
                kind=last.kind,
                guards=(),
                body=last.func,
                target=last.target,
            )
        )
    return records


def _extra_clauses(defs: List[Definition]) -> Tuple[str, ...]:
    found: List[str] = []
    arities = {d.arity for d in defs}
    kinds = {d.kind for d in defs}

    for d in defs:
        if d.kind not in _SUPPORTED_KINDS and d.kind not in found:
            found.append(d.kind)
    if len(kinds) > 1:
        for k in sorted(kinds & set(_SUPPORTED_KINDS)):
            if k not in found:
                found.append(k)
    if len(arities) > 1:
        name = defs[-1].func.__name__ if defs[-1].func is not None else "?"
        for a in sorted(arities):
            label = f"{name}/{a}"
            if label not in found:
                found.append(label)
    return tuple(found)


def finalize(cls: type, records: List[ValidationRecord]) -> None:
    """Replace each recorded function on cls with its wrapped definition."""
    for record in records:
        if record.consumed:
            continue

        wrapped = wrap(record.body, record.target, method=record.kind in ("function", "classmethod"))
        if record.kind == "staticmethod":
            wrapped = staticmethod(wrapped)
        elif record.kind == "classmethod":
            wrapped = classmethod(wrapped)

        setattr(cls, record.name, wrapped)
        record.consumed = True
        log.debug("[ferryman] wrapped %s.%s/%s with %s", record.owner, record.name, record.arity, record.target.name)

    setattr(cls, RECORDS_ATTR, tuple(records))


class ControllerMeta(type):
    @classmethod
    def __prepare__(mcls, name: str, bases: tuple, **kwargs: Any) -> DefinitionNamespace:
        return DefinitionNamespace()

    def __new__(mcls, name: str, bases: tuple, namespace: DefinitionNamespace, **kwargs: Any):
        owner = f"{namespace.get('__module__', '')}.{namespace.get('__qualname__', name)}".lstrip(".")
        records = collect(namespace, owner) if isinstance(namespace, DefinitionNamespace) else []
        if isinstance(namespace, DefinitionNamespace) and namespace.pending is not None:
            log.warning("[ferryman] `%s` ends with an unused %s annotation", owner, ANNOTATION_KEY)

        cls = super().__new__(mcls, name, bases, dict(namespace), **kwargs)
        finalize(cls, records)
        return cls


class Controller(metaclass=ControllerMeta):
    """Base class whose annotated functions are wrapped with validation."""
