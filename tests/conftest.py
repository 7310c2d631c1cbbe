import os
import pytest
import subprocess
import sys

import lsprpc
from lsprpc.transport.framing import FrameReader, encode


class Peer:
    """ The far end of a connection, standing in for a language server.
        Messages are plain dictionaries.
    """

    def __init__(self, stream):
        self.stream = stream
        self.reader = FrameReader(stream)

    def receive(self):
        return lsprpc.json.loads(self.reader.decode_next())

    def send(self, message):
        message = dict(message)
        message['jsonrpc'] = '2.0'
        self.send_raw(encode(lsprpc.json.dumps(message)))

    def send_raw(self, data):
        self.stream.write(data)

    def respond(self, id, result=None):
        self.send({'id': id, 'result': result})

    def notify(self, method, params=None):
        self.send({'method': method, 'params': params})

    def close(self):
        self.stream.close()


@pytest.fixture
def streams():

    near, far = lsprpc.pair()

    # A test that goes wrong should fail, not hang.
    far.socket.settimeout(5)

    yield near, far

    near.close()
    far.close()


@pytest.fixture
def peer(streams):
    near, far = streams
    return Peer(far)


@pytest.fixture
def session(streams):
    near, far = streams
    session = lsprpc.transport.Session(near, close_timeout=2)

    yield session

    session.close()


@pytest.fixture
def client(streams):
    near, far = streams
    client = lsprpc.Client(near, close_timeout=2)

    yield client

    client.close()


@pytest.fixture
def unitserver():

    here = os.path.dirname(os.path.abspath(__file__))

    arguments = list()
    arguments.append(sys.executable)
    arguments.append(os.path.join(here, 'unitserver.py'))

    pipe = subprocess.PIPE
    process = subprocess.Popen(arguments, stdin=pipe, stdout=pipe)

    yield process

    if process.poll() is None:
        process.terminate()
    process.wait(5)

    for pipe in (process.stdin, process.stdout):
        try:
            pipe.close()
        except OSError:
            pass

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
