"""Serial Register Bridge package.

AT-command server and client for bounds-checked integer registers over a
serial line, using pyserial with quiescence framing.
"""

__all__ = [
    "Client",
    "Comm",
    "Dispatcher",
    "Menu",
    "RegisterStore",
    "TransportError",
    "WriteResult",
    "is_allowed",
    "parse",
]

from .bounds import is_allowed
from .client import Client, Menu
from .comm import Comm, TransportError
from .dispatcher import Dispatcher
from .protocol import parse
from .registers import RegisterStore, WriteResult

__version__ = "0.1.0"
