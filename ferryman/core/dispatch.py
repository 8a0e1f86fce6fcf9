"""
Validation dispatch.

    @validate_with(Validators.NewThing.Create)
    async def create(request, params):
        <body>

is roughly equivalent to

    async def create(request, params):
        result = Validators.NewThing.Create.validate(request, params)
        if result.valid is True:
            return <body>
        settings = get_settings()
        body = settings.error_view.render("error.json", changeset=result)
        return settings.responder(request, settings.error_code, body)

The body is never executed when validation fails. Exceptions raised by the
validator propagate to the caller unchanged.
"""
from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, TypeVar

from pydantic import BaseModel
from starlette.responses import Response

from ferryman.core.changeset import Changeset
from ferryman.core.errors import ConfigurationError, InvalidStatusError
from ferryman.core.observability.metrics import (
    OUTCOME_INVALID,
    OUTCOME_MALFORMED,
    OUTCOME_VALID,
    inc_validation,
)
from ferryman.core.settings import get_settings
from ferryman.core.status import status_code

log = logging.getLogger("ferryman.dispatch")

F = TypeVar("F", bound=Callable[..., Any])

TARGET_ATTR = "__ferryman_target__"


@dataclass(frozen=True)
class ValidationTarget:
    """
    What an annotation names: a request validator, optionally paired with a
    response declaration (a Responses container) used for documentation.
    """

    request: Any
    response: Any = None

    @classmethod
    def coerce(cls, target: Any) -> "ValidationTarget":
        if isinstance(target, ValidationTarget):
            return target

        if isinstance(target, tuple):
            if len(target) != 2:
                raise ConfigurationError("Validation pair must be (request, response)")
            request, response = target
        elif isinstance(target, Mapping):
            unknown = set(target) - {"request", "response"}
            if unknown:
                raise ConfigurationError(f"Unknown validation keys: {', '.join(sorted(map(str, unknown)))}")
            request, response = target.get("request"), target.get("response")
        else:
            request, response = target, None

        if request is None:
            raise ConfigurationError("A request validator is required")
        if not callable(getattr(request, "validate", None)) or _inherits_model_validate(request):
            raise ConfigurationError(f"{_name_of(request)} does not define validate(request, params)")

        declared = getattr(request, "status_code", None)
        if declared is not None:
            try:
                status_code(declared)
            except InvalidStatusError as e:
                raise ConfigurationError(f"{_name_of(request)} declares an invalid status_code") from e

        return cls(request=request, response=response)

    @property
    def name(self) -> str:
        return _name_of(self.request)

    def failure_status(self) -> Optional[int]:
        declared = getattr(self.request, "status_code", None)
        if declared is None:
            return None
        return status_code(declared)


def _inherits_model_validate(obj: Any) -> bool:
    # pydantic models carry a deprecated BaseModel.validate that is not a validator.
    cls = obj if isinstance(obj, type) else type(obj)
    owner = next((k for k in cls.__mro__ if "validate" in vars(k)), None)
    return owner is BaseModel and "validate" not in getattr(obj, "__dict__", {})


def _name_of(obj: Any) -> str:
    module = getattr(obj, "__module__", None)
    qualname = getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None)
    if qualname is None:
        return type(obj).__name__
    return f"{module}.{qualname}" if module else qualname


# ------------------------------------------------------------
# Judgement
# ------------------------------------------------------------
def judge(result: Any) -> str:
    """
    valid     -> exactly valid (valid is True)
    invalid   -> anything else that carries errors
    malformed -> anything else
    """
    if isinstance(result, Changeset):
        return OUTCOME_VALID if result.valid is True else OUTCOME_INVALID

    if isinstance(result, Mapping):
        flag = result.get("valid", result.get("valid?"))
        has_errors = "errors" in result
    else:
        flag = getattr(result, "valid", None)
        has_errors = hasattr(result, "errors")

    if flag is True:
        return OUTCOME_VALID
    return OUTCOME_INVALID if has_errors else OUTCOME_MALFORMED


def render_error(conn: Any, result: Any, target: ValidationTarget) -> Any:
    settings = get_settings()
    code = target.failure_status() or settings.error_code

    body = settings.error_view.render("error.json", changeset=result)
    if isinstance(body, Response):
        body.status_code = code
        return body
    return settings.responder(conn, code, body)


# ------------------------------------------------------------
# Wrapping
# ------------------------------------------------------------
def validator_args(
    signature: inspect.Signature,
    args: tuple,
    kwargs: dict,
    *,
    skip_first: bool = False,
    skip_unused: bool = False,
) -> List[Any]:
    """
    Handler arguments in declaration order, as passed to validate().
    """
    bound = signature.bind(*args, **kwargs)
    bound.apply_defaults()

    out: List[Any] = []
    for i, (name, param) in enumerate(signature.parameters.items()):
        if skip_first and i == 0:
            continue
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            continue
        if skip_unused and name.startswith("_"):
            continue
        value = bound.arguments.get(name)
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            out.extend(value or ())
        else:
            out.append(value)
    return out


def _conn_of(signature: inspect.Signature, args: tuple, kwargs: dict, skip_first: bool) -> Any:
    names = list(signature.parameters)
    idx = 1 if skip_first else 0
    if len(args) > idx:
        return args[idx]
    if len(names) > idx:
        return kwargs.get(names[idx])
    return None


def _handle_result(conn: Any, result: Any, target: ValidationTarget) -> Optional[Any]:
    """Returns None when the handler body may run, else the error response."""
    outcome = judge(result)
    inc_validation(target.name, outcome)

    if outcome == OUTCOME_VALID:
        return None

    if outcome == OUTCOME_MALFORMED:
        log.warning(
            "[ferryman] %s returned %s without `valid` or `errors`; treating as invalid",
            target.name,
            type(result).__name__,
        )
        result = Changeset()
    else:
        log.debug("[ferryman] %s rejected request", target.name)

    return render_error(conn, result, target)


def wrap(func: Callable[..., Any], target: Any, *, method: bool = False) -> Callable[..., Any]:
    """
    Returns a new callable with func's signature whose body first dispatches
    to the target's validator. `method` skips the first argument (self/cls)
    when building validator arguments.
    """
    target = ValidationTarget.coerce(target)
    signature = inspect.signature(func)
    validate = target.request.validate
    skip_unused = bool(getattr(target.request, "skip_unused_args", False))

    def _args(args: tuple, kwargs: dict) -> List[Any]:
        return validator_args(signature, args, kwargs, skip_first=method, skip_unused=skip_unused)

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = validate(*_args(args, kwargs))
            if inspect.isawaitable(result):
                result = await result
            error = _handle_result(_conn_of(signature, args, kwargs, method), result, target)
            if error is not None:
                return error
            return await func(*args, **kwargs)

    else:

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = validate(*_args(args, kwargs))
            if inspect.isawaitable(result):
                # Sync handlers cannot await; close the coroutine to avoid a warning.
                close = getattr(result, "close", None)
                if close is not None:
                    close()
                raise ConfigurationError(f"{target.name} is async; the handler {func.__qualname__} must be async too")
            error = _handle_result(_conn_of(signature, args, kwargs, method), result, target)
            if error is not None:
                return error
            return func(*args, **kwargs)

    # Resolved annotations so frameworks that introspect the wrapper
    # (FastAPI) do not evaluate string annotations in this module's globals.
    try:
        wrapper.__signature__ = inspect.signature(func, eval_str=True)  # type: ignore[attr-defined]
    except (NameError, TypeError, SyntaxError):
        pass

    setattr(wrapper, TARGET_ATTR, target)
    return wrapper


def validate_with(target: Any) -> Callable[[F], F]:
    """
    Decorator form: compose a handler with a validator.

        @router.post("/things")
        @validate_with(CreateThing)
        async def create(request: Request, params: dict = Body(...)):
            ...
    """
    coerced = ValidationTarget.coerce(target)

    def decorator(func: F) -> F:
        return wrap(func, coerced)  # type: ignore[return-value]

    return decorator


def target_of(func: Any) -> Optional[ValidationTarget]:
    """Target attached by validate_with / validated, if any."""
    fn = getattr(func, "__func__", func)
    return getattr(fn, TARGET_ATTR, None)


def responses_for(func: Any) -> dict:
    """
    FastAPI `responses=` mapping from the response declaration paired with
    the handler's validator (empty when there is none).
    """
    target = target_of(func)
    if target is None or target.response is None:
        return {}
    return target.response.openapi()
