""" The ZeroMQ STREAM socket speaks plain TCP; the far end of each test is
    an ordinary listening socket from the standard library.
"""

import socket

import lsprpc
import pytest

from conftest import Peer


@pytest.fixture
def listener():

    server = socket.create_server(('127.0.0.1', 0))
    server.settimeout(5)

    yield server

    server.close()


def connect(listener):

    port = listener.getsockname()[1]
    stream = lsprpc.ZmqStream('tcp://127.0.0.1:%d' % (port,))

    accepted, _address = listener.accept()
    accepted.settimeout(5)

    return stream, Peer(lsprpc.SocketStream(accepted))


def test_raw_bytes(listener):

    stream, peer = connect(listener)

    stream.write(b'hello')

    received = b''
    while len(received) < 5:
        received += peer.stream.read(5)
    assert received == b'hello'

    peer.send_raw(b'0123456789')

    received = b''
    while len(received) < 10:
        received += stream.read(4)
    assert received == b'0123456789'

    stream.close()
    peer.close()


def test_session(listener):

    stream, peer = connect(listener)
    session = lsprpc.transport.Session(stream, close_timeout=2)

    pending = session.request('textDocument/hover', {'position': {'line': 1, 'character': 2}})
    received = peer.receive()
    assert received['method'] == 'textDocument/hover'

    peer.respond(received['id'], {'contents': 'over tcp'})
    assert pending.wait(5) == {'contents': 'over tcp'}

    subscription = session.subscribe('$/progress')
    peer.notify('$/progress', {'value': 1})
    assert subscription.get(5) == {'value': 1}

    session.close()
    peer.close()


def test_peer_disconnects(listener):

    stream, peer = connect(listener)
    session = lsprpc.transport.Session(stream, close_timeout=2)

    pending = session.request('never-answered')
    peer.receive()
    peer.close()

    with pytest.raises(lsprpc.ConnectionClosed):
        pending.wait(5)

    assert session.wait_closed(5)
    assert session.state is lsprpc.ConnectionState.CLOSED

    with pytest.raises(lsprpc.ConnectionClosed):
        session.notify('anything')


def test_nobody_listening():

    unused = socket.create_server(('127.0.0.1', 0))
    port = unused.getsockname()[1]
    unused.close()

    with pytest.raises(lsprpc.TransportError):
        lsprpc.ZmqStream('tcp://127.0.0.1:%d' % (port,), timeout=0.5)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
