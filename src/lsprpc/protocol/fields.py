"""Protocol constants.

Keep these in one place to avoid stringly-typed message handling.
"""

JSONRPC = "jsonrpc"
VERSION = "2.0"

ID = "id"
METHOD = "method"
PARAMS = "params"
RESULT = "result"
ERROR = "error"

CODE = "code"
MESSAGE = "message"
DATA = "data"

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Lifecycle methods (LSP 3.17)
INITIALIZE = "initialize"
INITIALIZED = "initialized"
SHUTDOWN = "shutdown"
EXIT = "exit"
