import pytest

from lsprpc import config


def test_defaults(monkeypatch):

    monkeypatch.delenv('LSPRPC_TEST_VALUE', raising=False)

    assert config._integer('LSPRPC_TEST_VALUE', 17) == 17
    assert config._seconds('LSPRPC_TEST_VALUE', 2.5) == 2.5

    monkeypatch.setenv('LSPRPC_TEST_VALUE', '')
    assert config._seconds('LSPRPC_TEST_VALUE', 2.5) == 2.5


def test_integer(monkeypatch):

    monkeypatch.setenv('LSPRPC_TEST_VALUE', '4096')
    assert config._integer('LSPRPC_TEST_VALUE', 1) == 4096

    for value in ('0', '-5', 'many', '1.5'):
        monkeypatch.setenv('LSPRPC_TEST_VALUE', value)
        with pytest.raises(ValueError):
            config._integer('LSPRPC_TEST_VALUE', 1)


def test_seconds(monkeypatch):

    monkeypatch.setenv('LSPRPC_TEST_VALUE', '0.25')
    assert config._seconds('LSPRPC_TEST_VALUE', 5.0) == 0.25

    for value in ('0', '-1', 'nan', 'inf', '-inf', 'soon'):
        monkeypatch.setenv('LSPRPC_TEST_VALUE', value)
        with pytest.raises(ValueError):
            config._seconds('LSPRPC_TEST_VALUE', 5.0)


def test_module_values():

    assert config.max_content_length > 0
    assert config.max_header_length > 0
    assert config.close_timeout > 0


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
