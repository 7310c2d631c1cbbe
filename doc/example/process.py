""" Start a Python language server, open this file, wait for the first
    diagnostics, and ask where the `lsprpc` import below is defined.

    Usage: python process.py [language-server-command ...]
"""

import logging
import pathlib
import subprocess
import sys
import threading

import lsprpc


def main():

    logging.basicConfig(level=logging.INFO)

    command = sys.argv[1:]
    if not command:
        command = ['pylsp']

    pipe = subprocess.PIPE
    child = subprocess.Popen(command, stdin=pipe, stdout=pipe)

    client = lsprpc.Client.from_process(child)

    source = pathlib.Path(__file__).resolve()
    source_uri = source.as_uri()
    root_uri = source.parent.as_uri()

    # Watch for diagnostics on this file; their arrival means the server
    # has finished its first pass over the document.

    diagnosed = threading.Event()
    diagnostics = client.subscribe_to_method('textDocument/publishDiagnostics')

    def watch_diagnostics():
        for params in diagnostics:
            if params.get('uri') == source_uri:
                count = len(params.get('diagnostics', ()))
                print('Received', count, 'diagnostics')
                diagnosed.set()
                break

        diagnostics.unsubscribe()

    watcher = threading.Thread(target=watch_diagnostics, daemon=True)
    watcher.start()

    # Some servers ask permission before reporting progress.

    client.on_request('window/workDoneProgress/create', lambda params: None)

    initialize_params = dict()
    initialize_params['processId'] = None
    initialize_params['rootUri'] = root_uri
    initialize_params['capabilities'] = {
        'workspace': {'workspaceFolders': True},
        'window': {'workDoneProgress': True},
    }
    initialize_params['workspaceFolders'] = [{'name': 'root', 'uri': root_uri}]

    result = client.initialize(initialize_params, timeout=30)
    client.initialized()

    server = result.get('serverInfo', dict()).get('name', command[0])
    print('Initialized', server)

    text_document = dict()
    text_document['uri'] = source_uri
    text_document['languageId'] = 'python'
    text_document['version'] = 1
    text_document['text'] = source.read_text()
    client.send_notification('textDocument/didOpen', {'textDocument': text_document})

    if not diagnosed.wait(60):
        print('Gave up waiting for diagnostics')

    # Position of `lsprpc` in the import statement above; zero-based.

    definition_params = dict()
    definition_params['textDocument'] = {'uri': source_uri}
    definition_params['position'] = {'line': 12, 'character': 7}

    response = client.send_request('textDocument/definition', definition_params, timeout=30)
    print('Goto definition response:', response)

    client.shutdown(timeout=30)
    client.exit()
    child.wait()
    client.close()


if __name__ == '__main__':
    main()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
