""" A minimal language server, run as a subprocess by the unit tests. It
    speaks just enough of the lifecycle to exercise a client over real
    pipes, plus an 'echo' request that returns its params.
"""

import sys

import lsprpc
from lsprpc.transport.framing import FrameReader, encode
from lsprpc.transport.stream import PipeStream


def send(stream, message):
    message['jsonrpc'] = '2.0'
    stream.write(encode(lsprpc.json.dumps(message)))


def main():

    stream = PipeStream(sys.stdin.buffer, sys.stdout.buffer)
    reader = FrameReader(stream)
    shutdown = False

    while True:
        try:
            payload = reader.decode_next()
        except lsprpc.ConnectionClosed:
            break

        message = lsprpc.json.loads(payload)
        method = message.get('method')
        id = message.get('id')

        if method == 'initialize':
            result = {'capabilities': {}, 'serverInfo': {'name': 'unitserver'}}
            send(stream, {'id': id, 'result': result})
        elif method == 'initialized':
            params = {'type': 3, 'message': 'unitserver ready'}
            send(stream, {'method': 'window/logMessage', 'params': params})
        elif method == 'echo':
            send(stream, {'id': id, 'result': message.get('params')})
        elif method == 'shutdown':
            shutdown = True
            send(stream, {'id': id, 'result': None})
        elif method == 'exit':
            break
        elif id is not None:
            error = {'code': -32601, 'message': 'method not found: ' + str(method)}
            send(stream, {'id': id, 'error': error})

    if shutdown:
        return 0
    return 1


if __name__ == '__main__':
    sys.exit(main())


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
