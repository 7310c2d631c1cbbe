""" Transport-agnostic session layer. A :class:`Session` owns one duplex
    stream and everything needed to multiplex it: a writer that keeps
    frames whole, a background thread that reads and routes incoming
    frames, a table of requests awaiting a response, and a registry of
    subscriptions to server notifications.
"""

from __future__ import annotations

import concurrent.futures
import enum
import itertools
import logging
import queue
import sys
import threading
import traceback
from typing import Any, Callable, Dict, List, Optional

from .. import config
from .. import json
from ..protocol import fields
from ..protocol.message import (
    Message,
    Notification,
    ProtocolViolation,
    Request,
    Response,
    ResponseError,
    parse,
)
from .base import (
    ConnectionClosed,
    FramingError,
    FramingIOError,
    RequestCancelled,
    RequestTimeout,
    Stream,
    TransportError,
)
from .framing import FrameReader, encode


logger = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
    FRESH = 0
    ACTIVE = 1
    CLOSING = 2
    CLOSED = 3


class Writer:
    """ Serialize concurrent sends into whole frames on the stream. A write
        failure is reported to the optional *failed* callback before being
        raised to the caller as a :class:`TransportError`.
    """

    def __init__(self, stream: Stream, failed: Optional[Callable[[TransportError], None]] = None):
        self.stream = stream
        self.failed = failed
        self.lock = threading.Lock()


    def send(self, payload: bytes) -> None:

        frame = encode(payload)

        with self.lock:
            try:
                self.stream.write(frame)
            except (OSError, ValueError) as e:
                # ValueError: write to a file object that is already closed.
                error = TransportError("write failed: %s" % (e,))
                error.__cause__ = e
            else:
                return

        if self.failed is not None:
            self.failed(error)

        raise error


# end of class Writer



class PendingRequest:
    """ Client-side helper that provides request/response synchronization.
        Instances are created by :func:`Session.request`; the session fills
        in the outcome exactly once, and :func:`wait` hands it back to the
        caller.
    """

    def __init__(self, session: "Session", request: Request):
        self.session = session
        self.request = request
        self.result: Any = None
        self.error: Optional[BaseException] = None
        self.event = threading.Event()

    @property
    def id(self) -> int:
        return self.request.id

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def done(self) -> bool:
        return self.event.is_set()


    def wait(self, timeout: Optional[float] = None) -> Any:
        """ Block until the response arrives and return its result. Raises
            :class:`ResponseError` if the peer answered with an error, and
            :class:`ConnectionClosed` if the connection went away first.

            If *timeout* expires the request is cancelled, as with
            :func:`cancel`, and :class:`RequestTimeout` is raised.
        """

        if not self.event.wait(timeout):
            if self.cancel():
                raise RequestTimeout("%s (id %s): no response in %.2f sec" % (self.method, self.id, timeout))

            # Lost the race against an arriving response; it is being
            # filled in right now.
            self.event.wait()

        if self.error is not None:
            raise self.error

        return self.result


    def cancel(self) -> bool:
        """ Stop waiting for this request. The entry is removed from the
            session's table; a response that arrives later is discarded. The
            remote peer is not told. Returns False if the request had already
            completed.
        """

        if self.session._pop_pending(self.id) is None:
            return False

        self._complete(error=RequestCancelled("%s (id %s) was cancelled" % (self.method, self.id)))
        return True


    def _complete(self, result: Any = None, error: Optional[BaseException] = None) -> None:
        self.result = result
        self.error = error
        self.event.set()


# end of class PendingRequest



_END = object()


class Subscription:
    """ A live registration for every notification whose method name is
        *method*. Iterating over a :class:`Subscription` yields the
        notification params in arrival order, blocking as needed; the
        iteration ends after :func:`unsubscribe`, or when the connection
        closes. Iteration can be stopped and resumed: each new loop picks
        up where the previous one left off.

        Each subscription has its own unbounded queue, so a slow consumer
        never holds up delivery to anyone else.
    """

    def __init__(self, session: "Session", method: str, id: int):
        self.session = session
        self.method = method
        self.id = id
        self._queue = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._live = True
        self._ended = False

    @property
    def live(self) -> bool:
        return self._live


    def __iter__(self):
        return self


    def __next__(self) -> Any:
        try:
            return self.get()
        except ConnectionClosed:
            raise StopIteration from None


    def __enter__(self) -> "Subscription":
        return self


    def __exit__(self, *exc) -> None:
        self.unsubscribe()


    def get(self, timeout: Optional[float] = None) -> Any:
        """ Return the params of the next notification. Raises
            :class:`ConnectionClosed` once the subscription has ended and
            everything delivered before that has been consumed, or
            :class:`RequestTimeout` if *timeout* seconds pass with nothing
            to return.
        """

        if self._ended:
            raise ConnectionClosed("subscription to %s has ended" % (self.method,))

        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            raise RequestTimeout("no %s notification in %.2f sec" % (self.method, timeout)) from None

        if item is _END:
            self._ended = True
            # Put the marker back for any other thread consuming this queue.
            self._queue.put(_END)
            raise ConnectionClosed("subscription to %s has ended" % (self.method,))

        return item


    def unsubscribe(self) -> None:
        """ Stop routing notifications here. Anything already delivered can
            still be consumed before the iteration ends.
        """

        self.session._unsubscribe(self)


    def _deliver(self, params: Any) -> None:
        with self._lock:
            if self._live:
                self._queue.put(params)


    def _end(self) -> None:
        with self._lock:
            if not self._live:
                return
            self._live = False
            self._queue.put(_END)


# end of class Subscription



class Session:
    """ Multiplex requests, responses, and notifications over one *stream*.
        The background reader thread starts immediately; the session is
        usable as soon as the constructor returns.

        *dumps* and *loads* replace the JSON codec from :mod:`lsprpc.json`.
        *workers* bounds the number of concurrently running handlers for
        requests initiated by the remote peer.
    """

    def __init__(self, stream: Stream, dumps=None, loads=None, workers: Optional[int] = None,
                 read_size: Optional[int] = None, max_content_length: Optional[int] = None,
                 max_header_length: Optional[int] = None, close_timeout: Optional[float] = None):

        self.stream = stream
        self.dumps = dumps or json.dumps
        self.loads = loads or json.loads
        self.close_timeout = config.close_timeout if close_timeout is None else close_timeout

        self._state = ConnectionState.FRESH
        self._state_lock = threading.Lock()
        self._closed = threading.Event()

        self.reader = FrameReader(stream, read_size, max_content_length, max_header_length)
        self.writer = Writer(stream, self._write_failed)

        # Each table has its own lock so that table updates never wait on
        # a slow write, or vice versa.

        self._ids = itertools.count(1)
        self._pending: Dict[int, PendingRequest] = dict()
        self._pending_lock = threading.Lock()
        self._pending_closed = False

        self._subscription_ids = itertools.count(1)
        self._subscriptions: Dict[str, Dict[int, Subscription]] = dict()
        self._subscriptions_lock = threading.Lock()
        self._subscriptions_closed = False

        self._handlers: Dict[str, Callable[[Any], Any]] = dict()
        self._handlers_lock = threading.Lock()
        self.workers = concurrent.futures.ThreadPoolExecutor(
            max_workers=workers or config.workers,
            thread_name_prefix='lsprpc.worker')

        self.thread = threading.Thread(target=self.run, name='lsprpc.Session', daemon=True)
        self._set_state(ConnectionState.ACTIVE)
        self.thread.start()


    def __enter__(self) -> "Session":
        return self


    def __exit__(self, *exc) -> None:
        self.close()


    @property
    def state(self) -> ConnectionState:
        return self._state


    def _set_state(self, state: ConnectionState) -> bool:
        """ Move forward to *state*. Returns False, and changes nothing, if
            the session is already there or beyond.
        """

        with self._state_lock:
            if state.value <= self._state.value:
                return False
            logger.debug("session %s -> %s", self._state.name, state.name)
            self._state = state
            return True


    def _require_active(self) -> None:
        if self._state is not ConnectionState.ACTIVE:
            raise ConnectionClosed("connection is %s" % (self._state.name.lower(),))


    # --- outgoing ---

    def _send(self, message: Message) -> None:
        self._require_active()
        payload = message.encode(self.dumps)
        self.writer.send(payload)


    def request(self, method: str, params: Any = None) -> PendingRequest:
        """ Send a request and return the :class:`PendingRequest` that will
            receive its response, without waiting for it.
        """

        self._require_active()

        with self._pending_lock:
            id = next(self._ids)

        pending = PendingRequest(self, Request(id, method, params))
        payload = pending.request.encode(self.dumps)

        # The entry goes in before the frame goes out; a fast peer may
        # answer before send() returns.

        with self._pending_lock:
            if self._pending_closed:
                raise ConnectionClosed("connection closed before %s was sent" % (method,))
            self._pending[id] = pending

        try:
            self.writer.send(payload)
        except TransportError:
            self._pop_pending(id)
            raise

        logger.debug("request %s (id %d) sent", method, id)
        return pending


    def send_request(self, method: str, params: Any = None, timeout: Optional[float] = None) -> Any:
        """ Send a request and block until its result is available. """

        pending = self.request(method, params)
        return pending.wait(timeout)


    def notify(self, method: str, params: Any = None) -> None:
        """ Send a notification. Returns once the frame is written. """

        self._send(Notification(method, params))
        logger.debug("notification %s sent", method)


    def _pop_pending(self, id: Any) -> Optional[PendingRequest]:
        with self._pending_lock:
            return self._pending.pop(id, None)


    def pending_ids(self) -> List[int]:
        """ Ids of the requests still awaiting a response. """

        with self._pending_lock:
            return list(self._pending)


    # --- subscriptions ---

    def subscribe(self, method: str) -> Subscription:
        """ Register interest in notifications named *method*. Every
            subscription receives every matching notification.
        """

        with self._subscriptions_lock:
            if self._subscriptions_closed:
                raise ConnectionClosed("connection closed, cannot subscribe to %s" % (method,))

            subscription = Subscription(self, method, next(self._subscription_ids))

            try:
                subscriptions = self._subscriptions[method]
            except KeyError:
                subscriptions = dict()
                self._subscriptions[method] = subscriptions

            subscriptions[subscription.id] = subscription

        return subscription


    def _unsubscribe(self, subscription: Subscription) -> None:

        with self._subscriptions_lock:
            try:
                subscriptions = self._subscriptions[subscription.method]
            except KeyError:
                subscriptions = None
            else:
                subscriptions.pop(subscription.id, None)
                if len(subscriptions) == 0:
                    del self._subscriptions[subscription.method]

        subscription._end()


    def subscribers(self, method: str) -> int:
        """ Number of live subscriptions for *method*. """

        with self._subscriptions_lock:
            return len(self._subscriptions.get(method, ()))


    # --- requests initiated by the remote peer ---

    def set_handler(self, method: str, handler: Optional[Callable[[Any], Any]]) -> None:
        """ Answer incoming requests named *method* with the return value of
            *handler*, called with the request params on a worker thread.
            A handler of None removes the registration; unhandled requests
            are answered with a method-not-found error.
        """

        with self._handlers_lock:
            if handler is None:
                self._handlers.pop(method, None)
            else:
                self._handlers[method] = handler


    def _req_incoming(self, request: Request) -> None:

        with self._handlers_lock:
            handler = self._handlers.get(request.method)

        try:
            self.workers.submit(self._req_handle, request, handler)
        except RuntimeError:
            # The executor is shut down; the connection is going away.
            logger.debug("dropping %s request during shutdown", request.method)


    def _req_handle(self, request: Request, handler: Optional[Callable[[Any], Any]]) -> None:

        if handler is None:
            error = ResponseError(fields.METHOD_NOT_FOUND, "method not found: %s" % (request.method,))
            response = Response(request.id, error=error)
        else:
            try:
                result = handler(request.params)
            except ResponseError as e:
                response = Response(request.id, error=e)
            except Exception:
                e_class, e_instance, _tb = sys.exc_info()
                logger.error("handler for %s failed", request.method, exc_info=True)
                data = {
                    "type": getattr(e_class, "__name__", "Exception"),
                    "text": str(e_instance),
                    "debug": traceback.format_exc(),
                }
                error = ResponseError(fields.INTERNAL_ERROR, str(e_instance), data)
                response = Response(request.id, error=error)
            else:
                response = Response(request.id, result=result)

        try:
            payload = response.encode(self.dumps)
        except TypeError as e:
            logger.error("result of %s is not serializable: %s", request.method, e)
            error = ResponseError(fields.INTERNAL_ERROR, "result is not serializable: %s" % (e,))
            payload = Response(request.id, error=error).encode(self.dumps)

        try:
            self._require_active()
            self.writer.send(payload)
        except TransportError as e:
            logger.debug("response to %s (id %s) not sent: %s", request.method, request.id, e)


    # --- incoming ---

    def run(self) -> None:
        """ Body of the reader thread. Returns when the stream ends or fails,
            after every outstanding request and subscription has been told.
        """

        try:
            self._read_loop()
        except ConnectionClosed:
            logger.debug('stream ended')
        except TransportError as e:
            if self._state is ConnectionState.ACTIVE:
                logger.error("connection failed: %s", e)
            else:
                logger.debug("stream closed: %s", e)
        except Exception:
            logger.exception('reader thread failed')
        finally:
            self._terminate()


    def _read_loop(self) -> None:

        while True:
            try:
                payload = self.reader.decode_next()
            except FramingIOError:
                raise
            except FramingError as e:
                logger.warning("dropping frame: %s", e)
                continue

            try:
                message = parse(payload, self.loads)
            except ProtocolViolation as e:
                logger.warning("dropping message: %s", e)
                continue

            if isinstance(message, Response):
                self._rep_incoming(message)
            elif isinstance(message, Notification):
                self._pub_incoming(message)
            else:
                self._req_incoming(message)


    def _rep_incoming(self, response: Response) -> None:

        pending = self._pop_pending(response.id)

        if pending is None:
            # Late, duplicate, or cancelled; not an error.
            logger.debug("discarding response for unknown id %s", repr(response.id))
            return

        if response.error is not None:
            pending._complete(error=response.error)
        else:
            pending._complete(result=response.result)


    def _pub_incoming(self, notification: Notification) -> None:

        with self._subscriptions_lock:
            try:
                subscriptions = list(self._subscriptions[notification.method].values())
            except KeyError:
                subscriptions = ()

        if not subscriptions:
            logger.debug("no subscribers for %s", notification.method)
            return

        for subscription in subscriptions:
            subscription._deliver(notification.params)


    # --- shutdown ---

    def _drain(self) -> None:
        """ Fail every pending request and end every subscription. Safe to
            call more than once, from any thread.
        """

        with self._pending_lock:
            self._pending_closed = True
            pending = list(self._pending.values())
            self._pending.clear()

        for request in pending:
            request._complete(error=ConnectionClosed("connection closed before %s (id %s) completed" % (request.method, request.id)))

        with self._subscriptions_lock:
            self._subscriptions_closed = True
            subscriptions = list()
            for registered in self._subscriptions.values():
                subscriptions.extend(registered.values())
            self._subscriptions.clear()

        for subscription in subscriptions:
            subscription._end()


    def _close_stream(self) -> None:
        try:
            self.stream.close()
        except (OSError, ValueError) as e:
            logger.debug("error closing stream: %s", e)


    def _write_failed(self, error: TransportError) -> None:

        if self._set_state(ConnectionState.CLOSING):
            logger.error("connection failed: %s", error)

        self._drain()

        # Wake up the reader thread, which finishes the shutdown.
        self._close_stream()


    def _terminate(self) -> None:

        self._set_state(ConnectionState.CLOSING)
        self._drain()

        # Queued handlers are dropped; a handler already running finishes,
        # but its response has nowhere to go.
        self.workers.shutdown(wait=False, cancel_futures=True)

        self._close_stream()
        self._set_state(ConnectionState.CLOSED)
        self._closed.set()


    def close(self) -> None:
        """ Shut the session down: pending requests fail with
            :class:`ConnectionClosed`, subscriptions end, and the stream is
            closed. Waits up to *close_timeout* seconds for the reader thread.
        """

        self._set_state(ConnectionState.CLOSING)
        self._drain()
        self._close_stream()

        if threading.current_thread() is self.thread:
            return

        if not self._closed.wait(self.close_timeout):
            logger.warning("reader thread still running %.2f sec after close", self.close_timeout)


    def wait_closed(self, timeout: Optional[float] = None) -> bool:
        """ Block until the session reaches :attr:`ConnectionState.CLOSED`. """

        return self._closed.wait(timeout)


# end of class Session


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
