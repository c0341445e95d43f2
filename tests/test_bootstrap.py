"""Tests for sshall.bootstrap module."""

from __future__ import annotations

import pytest

from sshall.bootstrap import get_transport, get_variables, init_sshall, list_transports
from sshall.transports.rsh import RshTransport
from sshall.transports.ssh import SshTransport


def test_transports_discovered(v):
    assert list_transports(v) == ["rsh", "ssh"]


def test_get_transport(v):
    assert isinstance(get_transport("ssh", v), SshTransport)
    assert isinstance(get_transport("rsh", v), RshTransport)


def test_unknown_transport(v):
    with pytest.raises(ValueError, match="Unknown transport: 'telnet'"):
        get_transport("telnet", v)


def test_init_is_cached(v):
    assert init_sshall() is v
    assert get_variables() is v
