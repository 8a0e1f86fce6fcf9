from __future__ import annotations

from typing import Any


class FerrymanError(Exception):
    pass


class ConfigurationError(FerrymanError):
    """Bad validation target, unimportable error view or unusable config value."""


class InvalidStatusError(FerrymanError, ValueError):
    def __init__(self, status: Any):
        self.status = status
        super().__init__(f"Unknown HTTP status: {status!r}")


class TemplateNotFoundError(FerrymanError):
    def __init__(self, *, view: str, template: str):
        self.view = view
        self.template = template
        super().__init__(f"Could not render {template!r} for {view}")
