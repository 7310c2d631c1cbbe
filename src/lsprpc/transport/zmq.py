""" ZeroMQ STREAM socket as a duplex byte stream. A STREAM socket speaks
    plain TCP to its peer, which makes it suitable for language servers
    that listen on a TCP port instead of using stdio.

    ZeroMQ sockets are not thread-safe. As with the request client in the
    rest of this package's lineage, a single background thread owns the
    socket; writers hand their bytes over through a queue and an inproc
    PAIR signal, then wait for the background thread to confirm the send.
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
from typing import Optional

import zmq

from .base import Stream, TransportError


logger = logging.getLogger(__name__)

zmq_context = zmq.Context.instance()
_instance_ids = itertools.count()


class _Outgoing:
    """ One pending write, completed by the background thread. """

    def __init__(self, data: bytes):
        self.data = data
        self.error: Optional[Exception] = None
        self.done = threading.Event()

    def _complete(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.done.set()


class ZmqStream(Stream):
    """ Connect to *address* (for example ``tcp://127.0.0.1:9257``) with a
        ZeroMQ STREAM socket. The constructor blocks until the TCP connection
        is established, raising :class:`TransportError` if that takes longer
        than *timeout* seconds.
    """

    timeout = 5.0
    poll_interval = 1000

    def __init__(self, address: str, timeout: Optional[float] = None, context: Optional[zmq.Context] = None):

        if timeout is None:
            timeout = self.timeout
        if context is None:
            context = zmq_context

        self.address = address
        self.routing_id: Optional[bytes] = None

        self.socket = context.socket(zmq.STREAM)
        self.socket.setsockopt(zmq.LINGER, 0)

        # A language server connection is not resumable; a dropped TCP
        # connection ends the stream.
        self.socket.setsockopt(zmq.RECONNECT_IVL, -1)

        internal = "inproc://lsprpc.ZmqStream:signal:%d" % (next(_instance_ids),)
        self._signal_rx = context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)
        self._signal_lock = threading.Lock()

        self._outbox = queue.SimpleQueue()
        self._inbox = queue.SimpleQueue()
        self._leftover = b''
        self._connected = threading.Event()
        self.shutdown = False

        self.socket.connect(address)

        self.thread = threading.Thread(target=self.run, name='lsprpc.ZmqStream', daemon=True)
        self.thread.start()

        if not self._connected.wait(timeout):
            self.close()
            raise TransportError("no connection to %s within %.2f sec" % (address, timeout))


    def _signal(self) -> None:

        # NOBLOCK: once the background thread has closed its end of the
        # pair, a blocking send would never return.

        with self._signal_lock:
            if self._signal_tx.closed:
                raise zmq.ZMQError(zmq.ENOTSOCK, 'signal socket is closed')
            self._signal_tx.send(b'', flags=zmq.NOBLOCK)


    def _handle_incoming(self) -> None:

        routing_id, data = self.socket.recv_multipart()

        if self.routing_id is None:
            # The first message on a connecting STREAM socket is the
            # zero-length connect notification.
            self.routing_id = routing_id
            self._connected.set()
            logger.debug("connected to %s", self.address)
            return

        if data == b'':
            # Zero-length message after the connect notification: the
            # peer closed the TCP connection.
            logger.debug("disconnected from %s", self.address)
            self.routing_id = None
            self.shutdown = True
            return

        self._inbox.put(data)


    def _handle_outgoing(self) -> None:

        self._signal_rx.recv(flags=zmq.NOBLOCK)

        try:
            pending = self._outbox.get(block=False)
        except queue.Empty:
            # close() signals without queueing anything.
            return

        if self.routing_id is None:
            pending._complete(OSError("not connected to %s" % (self.address,)))
            return

        try:
            self.socket.send_multipart((self.routing_id, pending.data))
        except zmq.ZMQError as e:
            pending._complete(OSError(str(e)))
        else:
            pending._complete()


    def run(self) -> None:

        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)

        try:
            while not self.shutdown:
                for active, _flag in poller.poll(self.poll_interval):
                    if active == self._signal_rx:
                        self._handle_outgoing()
                    elif active == self.socket:
                        self._handle_incoming()
        except zmq.ZMQError:
            logger.exception("ZeroMQ stream to %s failed", self.address)
        finally:
            self._teardown()


    def _teardown(self) -> None:

        self.shutdown = True

        if self.routing_id is not None:
            # A zero-length send closes the TCP connection.
            try:
                self.socket.send_multipart((self.routing_id, b''))
            except zmq.ZMQError:
                pass

        while True:
            try:
                pending = self._outbox.get(block=False)
            except queue.Empty:
                break
            pending._complete(OSError("stream to %s is closed" % (self.address,)))

        self.socket.close()
        self._signal_rx.close()
        self._inbox.put(b'')


    def read(self, size: int) -> bytes:

        if not self._leftover:
            chunk = self._inbox.get()
            if chunk == b'':
                # Leave the end-of-stream marker for any later reads.
                self._inbox.put(b'')
                return b''
            self._leftover = chunk

        data = self._leftover[:size]
        self._leftover = self._leftover[size:]
        return data


    def write(self, data: bytes) -> None:

        if self.shutdown:
            raise OSError("stream to %s is closed" % (self.address,))

        pending = _Outgoing(bytes(data))
        self._outbox.put(pending)

        try:
            self._signal()
        except zmq.ZMQError as e:
            raise OSError("stream to %s is closed: %s" % (self.address, e)) from e

        while not pending.done.wait(0.1):
            if not self.thread.is_alive():
                raise OSError("stream to %s is closed" % (self.address,))

        if pending.error is not None:
            raise pending.error


    def close(self) -> None:

        self.shutdown = True

        try:
            self._signal()
        except zmq.ZMQError:
            pass

        if threading.current_thread() is not self.thread:
            self.thread.join()

        with self._signal_lock:
            if not self._signal_tx.closed:
                self._signal_tx.close()


# end of class ZmqStream


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
