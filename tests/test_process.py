""" Run a whole client lifecycle against tests/unitserver.py, a real
    subprocess speaking over its stdin and stdout.
"""

import subprocess
import sys
import threading

import lsprpc
import pytest


def test_lifecycle(unitserver):

    client = lsprpc.Client.from_process(unitserver, close_timeout=2)
    messages = client.subscribe_to_method('window/logMessage')

    result = client.initialize({'processId': None, 'rootUri': None, 'capabilities': {}}, timeout=5)
    assert result['serverInfo']['name'] == 'unitserver'

    client.initialized()
    assert messages.get(5) == {'type': 3, 'message': 'unitserver ready'}

    params = {'nested': {'list': [1, 2.5, None, 'ünïcödé']}}
    assert client.send_request('echo', params, timeout=5) == params

    with pytest.raises(lsprpc.ResponseError) as caught:
        client.send_request('no/such/method', timeout=5)

    assert caught.value.code == -32601

    client.shutdown(timeout=5)
    client.exit()

    # The server exits on its own; end of its output closes the session.

    assert unitserver.wait(5) == 0
    assert client.session.wait_closed(5)
    assert client.state is lsprpc.ConnectionState.CLOSED
    assert list(messages) == []

    client.close()


def test_many_requests(unitserver):

    client = lsprpc.Client.from_process(unitserver, close_timeout=2)

    pending = [client.request('echo', number) for number in range(50)]
    results = [request.wait(5) for request in pending]
    assert results == list(range(50))

    client.close()

    # Closing the client closes the server's stdin; it exits without a
    # shutdown request having been seen.

    assert unitserver.wait(5) == 1


@pytest.fixture
def sleeper():
    """ A child process that never reads its stdin. """

    arguments = [sys.executable, '-c', 'import time; time.sleep(30)']

    pipe = subprocess.PIPE
    process = subprocess.Popen(arguments, stdin=pipe, stdout=pipe)

    yield process

    if process.poll() is None:
        process.kill()
    process.wait(5)

    for pipe in (process.stdin, process.stdout):
        try:
            pipe.close()
        except OSError:
            pass


def test_close_during_stuck_write(sleeper):
    """ A write blocked on a full pipe does not hold up close(). """

    client = lsprpc.Client.from_process(sleeper, close_timeout=1)
    outcome = dict()

    def send():
        try:
            client.send_notification('blob', 'x' * (1024 * 1024))
        except lsprpc.TransportError as e:
            outcome['error'] = e

    sender = threading.Thread(target=send, daemon=True)
    sender.start()

    sender.join(0.5)
    assert sender.is_alive()

    closer = threading.Thread(target=client.close, daemon=True)
    closer.start()
    closer.join(5)

    assert not closer.is_alive()
    assert client.state is not lsprpc.ConnectionState.ACTIVE

    # Once the child is gone the stuck write fails, and everything winds
    # down.

    sleeper.kill()
    sleeper.wait(5)

    sender.join(5)
    assert not sender.is_alive()
    assert isinstance(outcome['error'], lsprpc.TransportError)
    assert client.session.wait_closed(5)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
