"""Process orchestration for sshall: workers, throttle, and output locking."""

from __future__ import annotations

import logging
import os
import sys

logger = logging.getLogger(__name__)

# Worker exit status for infrastructure faults (mirrors EX_SOFTWARE).
EXIT_FATAL = 70

# Shell conventions for a transport that could not be executed.
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127

TTY_DEVICE = "/dev/tty"


class FatalError(Exception):
    """Infrastructure failure that invalidates the isolation or ordering guarantees.

    Raised for temp-file, lock, rewind, redirection and wait failures.  Unlike
    per-host faults these always terminate the program.
    """

    pass


def flush_std_streams() -> None:
    """Flush Python-level stdout/stderr so child processes don't inherit pending bytes."""
    for stream in (sys.stdout, sys.stderr):
        if stream is not None and not stream.closed:
            stream.flush()


def open_tty() -> int | None:
    """Open the controlling terminal for reading.

    Interactive authentication prompts (passwords, host key questions) need a
    real terminal even when host names arrive on stdin.  Failing to open one
    is not fatal: the caller keeps whatever stdin it already has.
    """
    try:
        return os.open(TTY_DEVICE, os.O_RDONLY)
    except OSError as e:
        logger.warning("Failed to open teletype %s: %s", TTY_DEVICE, e.strerror)
        return None
