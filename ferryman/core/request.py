from __future__ import annotations

from typing import ClassVar, Optional, Union

from ferryman.core.schema import Schema


class RequestValidator(Schema):
    """
    Validator that declares its own failure status and only receives the
    handler arguments it can use: parameters named with a leading underscore
    are not passed to validate().

        class UpdateThing(RequestValidator):
            status_code = "bad_request"

            name: Optional[str] = None

            @classmethod
            def validate(cls, request, thing_id, params):
                ...
    """

    status_code: ClassVar[Optional[Union[int, str]]] = None
    skip_unused_args: ClassVar[bool] = True
