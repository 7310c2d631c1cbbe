"""Transport interface.

This is the (small) contract that stream providers must follow, along with
the exceptions raised anywhere below the protocol layer. It lives outside
:mod:`lsprpc.protocol` so the protocol remains transport-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Transport exceptions

class TransportError(Exception):
    """Base class for all transport-layer errors. Fatal to the connection."""


class ConnectionClosed(TransportError):
    """The connection is gone; no further traffic is possible.

    Raised to every pending request and subscription when a session
    terminates, and to any operation attempted afterwards.
    """


class RequestTimeout(TransportError):
    """A caller-side wait expired. The connection itself is unaffected."""


class RequestCancelled(Exception):
    """The caller abandoned a request before its response arrived."""


# Framing exceptions

class FramingError(Exception):
    """A frame header could not be interpreted. Fatal to that one frame."""


class MissingLength(FramingError):
    """The header block ended without a Content-Length header."""


class InvalidLength(FramingError):
    """The Content-Length value is not a non-negative decimal integer."""


class FrameTooLarge(FramingError):
    """The declared Content-Length exceeds the configured maximum."""


class HeaderTooLarge(FramingError):
    """A header line ran past the configured maximum without a CRLF."""


class FramingIOError(FramingError, TransportError):
    """The stream failed, or ended, partway through a frame."""


class Stream(ABC):
    """Minimal contract for a duplex byte stream."""

    @abstractmethod
    def read(self, size: int) -> bytes:
        """Return up to *size* bytes; an empty result means end of stream."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Write all of *data*, or raise OSError."""

    @abstractmethod
    def close(self) -> None:
        """Release the stream. Blocked readers should wake up."""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
