"""Transport layer: framing, stream providers, and the session engine."""

from .base import (
    ConnectionClosed,
    FramingError,
    FramingIOError,
    FrameTooLarge,
    HeaderTooLarge,
    InvalidLength,
    MissingLength,
    RequestCancelled,
    RequestTimeout,
    Stream,
    TransportError,
)

from . import framing
from . import stream
from . import zmq
from . import session

from .stream import PipeStream, SocketStream, pair
from .zmq import ZmqStream
from .session import ConnectionState, PendingRequest, Session, Subscription, Writer


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
