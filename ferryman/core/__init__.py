from ferryman.core.changeset import Changeset
from ferryman.core.collector import Controller, ControllerMeta, ValidationRecord, validated
from ferryman.core.dispatch import ValidationTarget, judge, responses_for, target_of, validate_with, wrap
from ferryman.core.errors import ConfigurationError, FerrymanError, InvalidStatusError, TemplateNotFoundError
from ferryman.core.request import RequestValidator
from ferryman.core.response import Responses, response
from ferryman.core.schema import Schema
from ferryman.core.settings import configure, get_settings, reset_settings
from ferryman.core.status import reason_name, status_code
from ferryman.core.views import ChangesetView

__all__ = [
    "Changeset",
    "ChangesetView",
    "ConfigurationError",
    "Controller",
    "ControllerMeta",
    "FerrymanError",
    "InvalidStatusError",
    "RequestValidator",
    "Responses",
    "Schema",
    "TemplateNotFoundError",
    "ValidationRecord",
    "ValidationTarget",
    "configure",
    "get_settings",
    "judge",
    "reason_name",
    "reset_settings",
    "response",
    "responses_for",
    "status_code",
    "target_of",
    "validate_with",
    "validated",
    "wrap",
]
