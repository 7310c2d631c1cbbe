from . import fields
from . import message

from .message import (
    Message,
    Notification,
    ProtocolViolation,
    Request,
    Response,
    ResponseError,
    parse,
)


"""
lsprpc Protocol Layer
=====================

This package defines the JSON-RPC 2.0 envelopes exchanged with a language
server. It knows nothing about frames, streams, or threads.

---------------------------------------------------------------------

Layer Architecture Overview
---------------------------

User Code
    │
    ▼
Client Facade (client.py)
    - send_request()
    - send_notification()
    - subscribe_to_method()
    - initialize() / shutdown() ...

    │
    ▼
Session (transport/session.py)
    Correlation and fan-out
    - pending-request table
    - subscription registry
    - reader thread, writer lock

    │
    ▼
Message Model (protocol/message.py)
    Request / Response / Notification
    parse() for incoming payloads

    │
    ▼
Framing (transport/framing.py)
    Content-Length header <-> payload bytes

    │
    ▼
Stream (transport/stream.py, transport/zmq.py)
    Moves bytes: pipes, sockets, ZeroMQ STREAM

---------------------------------------------------------------------

Dependencies only flow downward. The protocol layer never imports from
the transport layer.
"""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
