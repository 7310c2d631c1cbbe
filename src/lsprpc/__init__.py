""" Python client engine for the Language Server Protocol, and other
    JSON-RPC 2.0 protocols using Content-Length framing over a duplex byte
    stream. This includes message framing, correlation of concurrent
    requests with their responses, and fan-out of server notifications to
    any number of subscribers.
"""

# Utility components.

from . import json
from . import config

# The layers, bottom up.

from . import protocol
from . import transport

# Primary public-facing interfaces.

from .client import Client

from .protocol import ProtocolViolation, ResponseError
from .transport import (
    ConnectionClosed,
    ConnectionState,
    FramingError,
    FramingIOError,
    FrameTooLarge,
    HeaderTooLarge,
    InvalidLength,
    MissingLength,
    PipeStream,
    RequestCancelled,
    RequestTimeout,
    SocketStream,
    Subscription,
    TransportError,
    ZmqStream,
    pair,
)

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
