"""ferryman: route handler validation through external validator classes.

Handlers declare a validator; before the handler body runs the validator's
validate(request, params) is called, and an invalid result short-circuits
into an error response rendered by the configured error view.
"""

from ferryman.core import *  # noqa: F401,F403
from ferryman.core import __all__  # noqa: F401

__version__ = "0.1.0"
