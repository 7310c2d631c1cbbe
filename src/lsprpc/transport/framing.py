"""Content-Length framing for protocol messages.

Every message on the wire is a header block followed by the payload:

    Content-Length: <decimal-byte-count>\\r\\n
    \\r\\n
    <payload bytes>

Header lines end with CRLF; the block ends with an empty line. Headers
other than Content-Length are ignored. There is no trailing delimiter
after the payload; the next frame starts on the very next byte.
"""

from __future__ import annotations

from typing import Optional

from .. import config
from .base import (
    ConnectionClosed,
    FramingIOError,
    FrameTooLarge,
    HeaderTooLarge,
    InvalidLength,
    MissingLength,
    Stream,
)


CRLF = b"\r\n"
CONTENT_LENGTH = b"content-length:"


def encode(payload: bytes) -> bytes:
    """Prefix *payload* with its header block."""

    header = b"Content-Length: %d\r\n\r\n" % (len(payload),)
    return header + payload


class FrameReader:
    """ Pull successive frame payloads off a :class:`Stream`. The reader owns
        a private buffer; bytes read past the end of one frame are retained
        for the next call to :func:`decode_next`, so a single instance can
        consume an unbounded sequence of frames. Only one thread may call
        :func:`decode_next` at a time.
    """

    def __init__(self, stream: Stream, read_size: Optional[int] = None, max_content_length: Optional[int] = None,
                 max_header_length: Optional[int] = None):
        self.stream = stream
        self.buffer = bytearray()
        self.read_size = read_size or config.read_size
        self.max_content_length = max_content_length or config.max_content_length
        self.max_header_length = max_header_length or config.max_header_length


    def _fill(self) -> bool:
        """ Read more bytes into the buffer. Returns False at end of stream.
        """

        try:
            chunk = self.stream.read(self.read_size)
        except (OSError, ValueError) as e:
            # ValueError: read from a file object closed by another thread.
            raise FramingIOError("stream read failed: %s" % (e,)) from e

        if not chunk:
            return False

        self.buffer.extend(chunk)
        return True


    def _readline(self) -> Optional[bytes]:
        """ Return the next CRLF-terminated line without its terminator, or
            None if the stream ends first.
        """

        start = 0

        while True:
            index = self.buffer.find(CRLF, start)
            if index > self.max_header_length:
                self._discard_line()
                raise HeaderTooLarge("header line of %d bytes exceeds the %d byte limit" % (index, self.max_header_length))

            if index >= 0:
                line = bytes(self.buffer[:index])
                del self.buffer[:index + 2]
                return line

            if len(self.buffer) > self.max_header_length:
                self._discard_line()
                raise HeaderTooLarge("header line exceeds the %d byte limit" % (self.max_header_length,))

            # A CR at the very end may pair with an LF in the next chunk.
            start = max(len(self.buffer) - 1, 0)

            if not self._fill():
                return None


    def _discard_line(self) -> None:
        """ Drop everything up to and including the next CRLF, holding no
            more than one read's worth of bytes at a time.
        """

        while True:
            index = self.buffer.find(CRLF)
            if index >= 0:
                del self.buffer[:index + 2]
                return

            # Keep a trailing CR for the LF that may follow.
            del self.buffer[:-1]

            if not self._fill():
                raise FramingIOError('stream ended inside an oversized header line')


    def _readexactly(self, count: int) -> bytes:

        while len(self.buffer) < count:
            if not self._fill():
                raise FramingIOError("stream ended after %d of %d payload bytes" % (len(self.buffer), count))

        payload = bytes(self.buffer[:count])
        del self.buffer[:count]
        return payload


    def _discard(self, count: int) -> None:

        while count > 0:
            if not self.buffer and not self._fill():
                raise FramingIOError("stream ended while discarding %d bytes" % (count,))

            dropped = min(count, len(self.buffer))
            del self.buffer[:dropped]
            count -= dropped


    def decode_next(self) -> bytes:
        """ Return the payload of the next frame. Raises
            :class:`ConnectionClosed` if the stream ends cleanly between
            frames, :class:`FramingIOError` if it ends or fails inside one,
            and :class:`MissingLength`, :class:`InvalidLength`,
            :class:`HeaderTooLarge` or :class:`FrameTooLarge` for a bad
            header block. After any of those the reader is positioned past
            the offending bytes and can be called again.
        """

        length = None
        invalid = None
        started = False

        while True:
            line = self._readline()

            if line is None:
                if not started and not self.buffer:
                    raise ConnectionClosed('end of stream')
                raise FramingIOError('stream ended inside a frame header')

            started = True

            if line == b"":
                break

            # The header name is matched case-insensitively. Searching from
            # the right also recovers a header that follows stray bytes left
            # over from an earlier frame that could not be read.

            index = line.lower().rfind(CONTENT_LENGTH)
            if index < 0:
                continue

            value = line[index + len(CONTENT_LENGTH):].strip()
            if value.isdigit():
                length = int(value)
                invalid = None
            else:
                length = None
                invalid = value

        if invalid is not None:
            raise InvalidLength("invalid Content-Length: %s" % (repr(invalid),))

        if length is None:
            raise MissingLength('Content-Length header not found')

        if length > self.max_content_length:
            self._discard(length)
            raise FrameTooLarge("frame of %d bytes exceeds the %d byte limit" % (length, self.max_content_length))

        return self._readexactly(length)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
