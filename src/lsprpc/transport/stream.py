"""Stream providers built on the standard library: pipes and sockets."""

from __future__ import annotations

import socket
import threading
from typing import BinaryIO, Tuple

from .base import Stream


class PipeStream(Stream):
    """ A duplex stream assembled from two one-way binary file objects,
        typically the stdout (*reader*) and stdin (*writer*) of a language
        server subprocess.

        Closing a buffered file object blocks until any read or write in
        progress on another thread completes. :func:`close` therefore never
        closes a file object that is in use: the *writer* is closed right
        away unless a write is stuck on a peer that stopped reading, and the
        *reader* unless a read is waiting on a peer that has not written.
        Either one is closed by the read or write that was holding it, once
        that returns. Normally the peer notices end-of-input and exits,
        which ends both.
    """

    def __init__(self, reader: BinaryIO, writer: BinaryIO):
        self.reader = reader
        self.writer = writer

        try:
            self._read = reader.read1
        except AttributeError:
            self._read = reader.read

        self._lock = threading.Lock()
        self._closed = False
        self._reading = False
        self._writing = False


    @classmethod
    def from_process(cls, process) -> "PipeStream":
        """ Wrap the pipes of an already running :class:`subprocess.Popen`
            instance, which must have been started with ``stdin=PIPE`` and
            ``stdout=PIPE``.
        """

        if process.stdin is None or process.stdout is None:
            raise ValueError('process must be started with stdin and stdout pipes')

        return cls(process.stdout, process.stdin)


    def read(self, size: int) -> bytes:

        with self._lock:
            if self._closed:
                return b''
            self._reading = True

        try:
            data = self._read(size)
        finally:
            with self._lock:
                self._reading = False
                if self._closed:
                    self.reader.close()

        return data


    def write(self, data: bytes) -> None:

        with self._lock:
            if self._closed:
                raise ValueError('write to a closed stream')
            self._writing = True

        try:
            # Raw (unbuffered) files may accept a partial write.

            view = memoryview(data)
            while view:
                written = self.writer.write(view)
                view = view[written:]

            self.writer.flush()
        finally:
            with self._lock:
                self._writing = False
                closed = self._closed

            if closed:
                self._close_writer()


    def _close_writer(self) -> None:
        try:
            self.writer.close()
        except OSError:
            # Flushing into a pipe the peer already closed.
            pass


    def close(self) -> None:

        with self._lock:
            if self._closed:
                return
            self._closed = True
            reading = self._reading
            writing = self._writing

        if not writing:
            self._close_writer()

        if not reading:
            self.reader.close()


# end of class PipeStream



class SocketStream(Stream):
    """ A duplex stream over a connected stream socket. """

    def __init__(self, sock: socket.socket):
        self.socket = sock


    def read(self, size: int) -> bytes:
        return self.socket.recv(size)


    def write(self, data: bytes) -> None:
        self.socket.sendall(data)


    def close(self) -> None:

        # shutdown() wakes up a recv() blocked in another thread; close()
        # alone does not.

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

        self.socket.close()


# end of class SocketStream



def pair() -> Tuple[SocketStream, SocketStream]:
    """ Return two connected :class:`SocketStream` instances. Bytes written
        to one are read from the other; useful as an in-process channel.
    """

    left, right = socket.socketpair()
    return SocketStream(left), SocketStream(right)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
