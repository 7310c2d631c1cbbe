""" The :class:`Client` is the principal entry point for talking to a
    language server. It is a thin layer over a
    :class:`lsprpc.transport.Session`: requests and notifications are
    opaque method names paired with JSON-compatible params, with a few
    convenience methods for the LSP lifecycle handshake.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from .protocol import fields
from .transport.session import ConnectionState, PendingRequest, Session, Subscription
from .transport.stream import PipeStream


class Client:
    """ Issue requests and notifications over *stream*, and subscribe to
        notifications from the remote side. A single :class:`Client` may
        be shared by any number of threads.

        Keyword arguments are passed through to :class:`Session`.
    """

    def __init__(self, stream, **kwargs):
        self.session = Session(stream, **kwargs)


    @classmethod
    def from_process(cls, process, **kwargs) -> "Client":
        """ Talk to an already running :class:`subprocess.Popen` over its
            stdin and stdout pipes. Starting and reaping the process remains
            the caller's responsibility.
        """

        return cls(PipeStream.from_process(process), **kwargs)


    def __enter__(self) -> "Client":
        return self


    def __exit__(self, *exc) -> None:
        self.close()


    @property
    def state(self) -> ConnectionState:
        return self.session.state


    def send_request(self, method: str, params: Any = None, timeout: Optional[float] = None,
                     decode: Optional[Callable[[Any], Any]] = None) -> Any:
        """ Send a request and block until the response arrives. The result
            is returned as decoded JSON, or passed through *decode* first if
            one is provided. An error response raises
            :class:`lsprpc.ResponseError`.
        """

        result = self.session.send_request(method, params, timeout)

        if decode is not None:
            result = decode(result)

        return result


    def request(self, method: str, params: Any = None) -> PendingRequest:
        """ Send a request without waiting; see :class:`PendingRequest`. """

        return self.session.request(method, params)


    def send_notification(self, method: str, params: Any = None) -> None:
        self.session.notify(method, params)


    def subscribe_to_method(self, method: str) -> Subscription:
        return self.session.subscribe(method)


    def on_request(self, method: str, handler: Optional[Callable[[Any], Any]]) -> None:
        """ Handle requests the server sends to the client, such as
            ``window/workDoneProgress/create``. See :func:`Session.set_handler`.
        """

        self.session.set_handler(method, handler)


    def initialize(self, params: Any, timeout: Optional[float] = None) -> Any:
        """ Request the server to initialize the client.

            https://microsoft.github.io/language-server-protocol/specifications/lsp/3.17/specification/#initialize
        """

        return self.send_request(fields.INITIALIZE, params, timeout)


    def initialized(self) -> None:
        """ Notify the server that the client received the result of the
            ``initialize`` request.
        """

        self.send_notification(fields.INITIALIZED, {})


    def shutdown(self, timeout: Optional[float] = None) -> None:
        """ Request the server to shut down. The connection stays open. """

        self.send_request(fields.SHUTDOWN, None, timeout)


    def exit(self) -> None:
        """ Notify the server to exit the process. """

        self.send_notification(fields.EXIT)


    def close(self) -> None:
        self.session.close()


# end of class Client


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
