"""Bidirectional value bridge between Python and an embedded script runtime."""

from . import bridge as _bridge
from . import codec as _codec
from . import constants as _constants
from . import errors as _errors
from . import kwargs as _kwargs
from . import records as _records
from . import values as _values
from .bridge import *  # noqa: F401,F403
from .codec import *  # noqa: F401,F403
from .constants import *  # noqa: F401,F403
from .errors import *  # noqa: F401,F403
from .kwargs import *  # noqa: F401,F403
from .records import *  # noqa: F401,F403
from .values import *  # noqa: F401,F403

__all__ = []
for _module in (_constants, _errors, _values, _records, _codec, _bridge, _kwargs):
    __all__ += getattr(_module, "__all__", [])
__all__ = list(dict.fromkeys(__all__))
