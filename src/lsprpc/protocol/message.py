""" A class representation of a JSON-RPC message, including subclasses for
    the three envelopes that travel inside a frame: requests, responses,
    and notifications.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Union

from .. import json
from .fields import (
    CODE,
    DATA,
    ERROR,
    ID,
    INTERNAL_ERROR,
    JSONRPC,
    MESSAGE,
    METHOD,
    PARAMS,
    RESULT,
    VERSION,
)


Id = Union[int, str]


class ProtocolViolation(Exception):
    """ A frame carried something other than a well-formed JSON-RPC envelope.
        The frame is dropped; the connection is not affected.
    """


class ResponseError(Exception):
    """ The remote peer answered a request with an error object. The
        *code*, *message*, and *data* fields are carried over verbatim
        from the response.
    """

    def __init__(self, code: int = INTERNAL_ERROR, message: str = 'unknown error', data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        Exception.__init__(self, "error %s: %s" % (code, message))

    @classmethod
    def from_dict(cls, error: Any) -> "ResponseError":
        if not isinstance(error, dict):
            return cls(message=repr(error))

        code = error.get(CODE, INTERNAL_ERROR)
        message = error.get(MESSAGE, 'unknown error')
        data = error.get(DATA)
        return cls(code, message, data)

    def to_dict(self) -> Dict[str, Any]:
        error = {CODE: self.code, MESSAGE: self.message}
        if self.data is not None:
            error[DATA] = self.data
        return error


class Message:
    """ The :class:`Message` is the common base for every envelope. The
        only behavior shared by all of them is conversion to a dictionary
        and, from there, to the bytes that make up a frame payload.
    """

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError('subclasses must implement to_dict()')

    def encode(self, dumps: Optional[Callable[[Any], bytes]] = None) -> bytes:
        if dumps is None:
            dumps = json.dumps

        encoded = dumps(self.to_dict())

        try:
            encoded.decode
        except AttributeError:
            # Injected codecs may hand back str, like the standard library.
            encoded = encoded.encode('utf-8')

        return encoded

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return "%s(%s)" % (type(self).__name__, repr(self.to_dict()))


class Request(Message):
    """ A request expects exactly one :class:`Response` carrying the same
        *id*. Requests originate on either side of the connection; the
        client assigns ids to its own requests, the server to its own.
    """

    def __init__(self, id: Id, method: str, params: Any = None):
        self.id = id
        self.method = method
        self.params = params

    def to_dict(self) -> Dict[str, Any]:
        message = {JSONRPC: VERSION, ID: self.id, METHOD: self.method}
        if self.params is not None:
            message[PARAMS] = self.params
        return message


class Notification(Message):
    """ A one-way message. No response is expected or permitted. """

    def __init__(self, method: str, params: Any = None):
        self.method = method
        self.params = params

    def to_dict(self) -> Dict[str, Any]:
        message = {JSONRPC: VERSION, METHOD: self.method}
        if self.params is not None:
            message[PARAMS] = self.params
        return message


class Response(Message):
    """ The answer to a :class:`Request`. Exactly one of *result* or *error*
        is meaningful; a response with an *error* set is a failure even
        if *result* is also populated.

        The *id* may be None, which JSON-RPC reserves for errors where the
        request id could not be determined.
    """

    def __init__(self, id: Optional[Id], result: Any = None, error: Optional[ResponseError] = None):
        self.id = id
        self.result = result
        self.error = error

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        message = {JSONRPC: VERSION, ID: self.id}
        if self.error is None:
            message[RESULT] = self.result
        else:
            message[ERROR] = self.error.to_dict()
        return message


def _valid_id(value: Any) -> bool:

    # bool is a subclass of int, and is not a legal id.

    if isinstance(value, bool):
        return False

    return isinstance(value, (int, str))


def parse(payload: bytes, loads: Optional[Callable[[bytes], Any]] = None) -> Message:
    """ Interpret a frame *payload* as a JSON-RPC envelope, returning a
        :class:`Request`, :class:`Response`, or :class:`Notification`.
        Anything else raises :class:`ProtocolViolation`. The ``jsonrpc``
        version member is not required on incoming messages.
    """

    if loads is None:
        loads = json.loads

    try:
        decoded = loads(payload)
    except Exception as e:
        raise ProtocolViolation("payload is not valid JSON: %s" % (e,)) from e

    if not isinstance(decoded, dict):
        raise ProtocolViolation("expected a JSON object, got %s" % (type(decoded).__name__,))

    if METHOD in decoded:
        method = decoded[METHOD]
        if not isinstance(method, str):
            raise ProtocolViolation("method must be a string: %s" % (repr(method),))

        params = decoded.get(PARAMS)

        if ID in decoded:
            id = decoded[ID]
            if not _valid_id(id):
                raise ProtocolViolation("invalid request id: %s" % (repr(id),))
            return Request(id, method, params)

        return Notification(method, params)

    if ID in decoded:
        id = decoded[ID]
        if id is not None and not _valid_id(id):
            raise ProtocolViolation("invalid response id: %s" % (repr(id),))

        if ERROR in decoded and decoded[ERROR] is not None:
            return Response(id, error=ResponseError.from_dict(decoded[ERROR]))

        if RESULT in decoded:
            return Response(id, result=decoded[RESULT])

        raise ProtocolViolation("response %s has neither result nor error" % (repr(id),))

    raise ProtocolViolation('message has neither a method nor an id')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
