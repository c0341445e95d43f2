"""Shared pytest fixtures for sshall tests."""

from __future__ import annotations

import logging
import stat
import sys
import textwrap
from pathlib import Path
from typing import Any

import pytest

from sshall.bootstrap import init_sshall

FAKE_SSH_SOURCE = '''\
import os
import sys
import time

host, command = sys.argv[-2], sys.argv[-1]
log = os.environ.get("FAKE_SSH_LOG")


def record(event):
    if log:
        with open(log, "ab") as f:
            f.write(os.fsencode("%s %s\\n" % (event, host)))


def emit(stream, text):
    stream.buffer.write(os.fsencode(text))
    stream.flush()


record("start")
time.sleep(float(os.environ.get("FAKE_SSH_SLEEP", "0")))
if os.environ.get("FAKE_SSH_STDIN"):
    emit(sys.stdout, "%s: stdin %s\\n" % (host, os.fsdecode(sys.stdin.buffer.read()).strip()))
for i in range(int(os.environ.get("FAKE_SSH_LINES", "1"))):
    emit(sys.stdout, "%s: %s line %d\\n" % (host, command, i))
emit(sys.stderr, "%s: on stderr\\n" % host)
record("end")
if command.startswith("exit "):
    sys.exit(int(command.split()[1]))
'''


@pytest.fixture(autouse=True)
def isolate_bootstrap():
    """Reset the bootstrap singleton between tests."""
    import sshall.bootstrap
    sshall.bootstrap._variables = None
    yield
    sshall.bootstrap._variables = None


@pytest.fixture
def v() -> Any:
    """Initialize sshall and return the Variables instance.

    Uses WARNING log level to reduce test output noise.
    """
    import sshall.bootstrap
    sshall.bootstrap._variables = None

    return init_sshall(log_level="WARNING")


@pytest.fixture
def hosts_file(tmp_path: Path) -> Path:
    """Create a temporary hosts file with sample hosts."""
    f = tmp_path / "hosts.txt"
    f.write_text("h1\nh2\nh3\n")
    return f


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Private temp directory for lock files and host buffers."""
    d = tmp_path / "work"
    d.mkdir()
    return d


@pytest.fixture
def fake_ssh(tmp_path: Path) -> Path:
    """Executable standing in for ``ssh``.

    Echoes ``<host>: <command> line N`` to stdout (``FAKE_SSH_LINES`` lines,
    default 1) and one line to stderr, optionally sleeping
    ``FAKE_SSH_SLEEP`` seconds first and appending start/end events to
    ``FAKE_SSH_LOG``.  With ``FAKE_SSH_STDIN`` set it first echoes its
    stdin.  A command of ``exit N`` exits with status N.
    """
    script = tmp_path / "fake-ssh"
    script.write_text("#!%s\n%s" % (sys.executable, textwrap.dedent(FAKE_SSH_SOURCE)))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


def _parse_blocks(text: str) -> list[tuple[str, str, list[str]]]:
    """Split sshall output into (host, rule, body lines) blocks."""
    blocks = []
    lines = text.splitlines()
    i = 0
    while i < len(lines):
        host, rule = lines[i], lines[i + 1]
        assert rule.startswith("-------"), "expected a rule line after %r, got %r" % (host, rule)
        i += 2
        body = []
        while i < len(lines) and lines[i] != "":
            body.append(lines[i])
            i += 1
        i += 1
        blocks.append((host, rule, body))
    return blocks


@pytest.fixture
def parse_output():
    """Return a parser splitting sshall output into (host, rule, body) blocks."""
    return _parse_blocks


@pytest.fixture(autouse=True)
def restore_logging():
    """Put the root logger back after tests that call setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
