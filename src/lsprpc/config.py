""" Process-wide defaults for :mod:`lsprpc`. Every value can be overridden
    with an environment variable, read once at import time; individual
    :class:`lsprpc.Client` instances accept keyword overrides as well.
"""

import math
import os


def _integer(name, default):

    value = os.environ.get(name)

    if value is None or value == '':
        return default

    try:
        value = int(value)
    except ValueError:
        raise ValueError("%s must be an integer, not %s" % (name, repr(value)))

    if value <= 0:
        raise ValueError("%s must be positive, not %d" % (name, value))

    return value


def _seconds(name, default):

    value = os.environ.get(name)

    if value is None or value == '':
        return default

    try:
        value = float(value)
    except ValueError:
        raise ValueError("%s must be a number, not %s" % (name, repr(value)))

    # float() accepts 'nan' and 'inf'.
    if not math.isfinite(value) or value <= 0:
        raise ValueError("%s must be a positive number of seconds, not %s" % (name, repr(value)))

    return value


# Largest payload the framer will accept; anything larger is consumed and
# discarded without being decoded.

max_content_length = _integer('LSPRPC_MAX_CONTENT_LENGTH', 64 * 1024 * 1024)

# Longest header line the framer will buffer while looking for its CRLF.

max_header_length = _integer('LSPRPC_MAX_HEADER_LENGTH', 8192)

# Number of bytes requested from the stream per read.

read_size = _integer('LSPRPC_READ_SIZE', 65536)

# Worker threads available to handle requests initiated by the remote peer.

workers = _integer('LSPRPC_WORKERS', 4)

# How long Session.close() waits for the reader thread to exit.

close_timeout = _seconds('LSPRPC_CLOSE_TIMEOUT', 5.0)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
