"""
Runtime configuration for the validation layer.

Resolution order (first hit wins):
  1) configure(...) overrides (tests, app startup code)
  2) environment:
       FERRYMAN_ERROR_CODE  : status used when validation fails (int or name)
       FERRYMAN_ERROR_VIEW  : dotted path "package.module:Attr" of the error view
  3) FERRYMAN_CONFIG_FILE : optional YAML/JSON mapping with the same keys
     (error_code, error_view)
  4) defaults: 422 and ferryman.core.views:ChangesetView

Settings are resolved on every failed validation, so changing them applies
to handlers that were wrapped earlier.
"""
from __future__ import annotations

import importlib
import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from starlette.responses import JSONResponse

from ferryman.core.errors import ConfigurationError, InvalidStatusError
from ferryman.core.status import status_code

_log = logging.getLogger("ferryman.settings")

DEFAULT_ERROR_CODE = 422
DEFAULT_ERROR_VIEW = "ferryman.core.views:ChangesetView"

Responder = Callable[[Any, int, Any], Any]


def json_responder(conn: Any, status: int, body: Any) -> Any:
    return JSONResponse(status_code=status, content=body)


@dataclass(frozen=True)
class Settings:
    error_code: int
    error_view: Any
    responder: Responder


_UNSET = object()
_OVERRIDES: Dict[str, Any] = {}


def configure(
    *,
    error_view: Any = _UNSET,
    error_code: Any = _UNSET,
    responder: Any = _UNSET,
) -> None:
    if error_code is not _UNSET:
        try:
            _OVERRIDES["error_code"] = status_code(error_code)
        except InvalidStatusError as e:
            raise ConfigurationError(f"Invalid error_code: {error_code!r}") from e
    if error_view is not _UNSET:
        _OVERRIDES["error_view"] = error_view
    if responder is not _UNSET:
        if not callable(responder):
            raise ConfigurationError("responder must be callable")
        _OVERRIDES["responder"] = responder


def reset_settings() -> None:
    """
    Test helper: drops runtime overrides and the cached config file.
    """
    _OVERRIDES.clear()
    _load_config_file.cache_clear()


def get_settings() -> Settings:
    file_cfg = load_config_file()

    raw_code = _OVERRIDES.get("error_code")
    if raw_code is None:
        raw_code = (os.getenv("FERRYMAN_ERROR_CODE") or "").strip() or file_cfg.get("error_code") or DEFAULT_ERROR_CODE
    try:
        code = status_code(raw_code)
    except InvalidStatusError as e:
        raise ConfigurationError(f"Invalid error_code: {raw_code!r}") from e

    view = _OVERRIDES.get("error_view")
    if view is None:
        view = (os.getenv("FERRYMAN_ERROR_VIEW") or "").strip() or file_cfg.get("error_view") or DEFAULT_ERROR_VIEW

    return Settings(
        error_code=code,
        error_view=resolve_view(view),
        responder=_OVERRIDES.get("responder", json_responder),
    )


def resolve_view(view: Any) -> Any:
    """
    Accepts a dotted path, a class (instantiated with no args), or any object
    exposing render(template, **assigns).
    """
    if isinstance(view, str):
        view = import_object(view)
    if isinstance(view, type):
        view = view()
    if not callable(getattr(view, "render", None)):
        raise ConfigurationError(f"Error view {view!r} has no render()")
    return view


def import_object(path: str) -> Any:
    """Import "package.module:Attr" (or "package.module.Attr")."""
    module_name, sep, attr = path.partition(":")
    if not sep:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ConfigurationError(f"Invalid import path: {path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import {module_name!r}: {e}") from e

    obj: Any = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise ConfigurationError(f"{module_name!r} has no attribute {attr!r}") from None
    return obj


def load_config_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Returns an empty dict when no file is configured. A configured file that
    cannot be read or parsed is a configuration error.
    """
    resolved = _resolve_path(path)
    if resolved is None:
        return {}
    return dict(_load_config_file(str(resolved)))


def _resolve_path(path: Optional[Path]) -> Optional[Path]:
    if path is not None:
        return Path(path)
    env_path = os.getenv("FERRYMAN_CONFIG_FILE", "").strip()
    if env_path:
        return Path(env_path)
    return None


@lru_cache(maxsize=8)
def _load_config_file(path: str) -> Dict[str, Any]:
    p = Path(path)
    try:
        raw_text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {p}: {e}") from e

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        import yaml

        try:
            data = yaml.safe_load(raw_text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse config file {p} as JSON or YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {p} must be a mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - {"error_code", "error_view"})
    if unknown:
        _log.warning("Ignoring unknown keys in %s: %s", p, ", ".join(map(str, unknown)))

    _log.info("Loaded ferryman config from %s", p)
    return {k: data[k] for k in ("error_code", "error_view") if k in data}
