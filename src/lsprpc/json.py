""" JSON codec used for every frame payload, unless a :class:`Session` is
    given its own. :func:`dumps` returns the UTF-8 bytes that go on the
    wire, :func:`loads` accepts bytes straight from a frame, and
    :class:`DecodeError` is what :func:`loads` raises on malformed input.

    msgspec is used if it is installed (``pip install lsprpc[fast]``);
    orjson, a hard dependency, is used otherwise.
"""


def _msgspec():
    import msgspec

    encoder = msgspec.json.Encoder()
    decoder = msgspec.json.Decoder()

    return encoder.encode, decoder.decode, msgspec.DecodeError


def _orjson():
    import orjson

    return orjson.dumps, orjson.loads, orjson.JSONDecodeError


try:
    dumps, loads, DecodeError = _msgspec()
except ImportError:
    dumps, loads, DecodeError = _orjson()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
