"""One-host-at-a-time execution.

Used when no concurrency ceiling is configured and for interactive login
sessions.  Output goes straight to the shared stream, so no buffering or
locking is involved.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
from typing import BinaryIO, Iterable

from sshall.orchestration import FatalError, flush_std_streams, open_tty
from sshall.utils.cli_formatters import format_block_header

logger = logging.getLogger(__name__)


def _write_header(out: BinaryIO | None, text: str) -> None:
    data = os.fsencode(text)
    try:
        if out is None:
            sys.stdout.flush()
            out = sys.stdout.buffer
        out.write(data)
        out.flush()
    except OSError as e:
        raise FatalError("Failed to write output: %s" % (e.strerror or e))


def _open_output(output_path: str | None) -> BinaryIO | None:
    if not output_path:
        return None
    try:
        return open(output_path, "ab")
    except OSError as e:
        raise FatalError("Failed to open output %s: %s" % (output_path, e.strerror or e))


def run_sequential(
        hosts: Iterable[str],
        command: str | None,
        *,
        transport,
        binary: str | None = None,
        user: str | None = None,
        key: str | None = None,
        options: list[str] | None = None,
        delay: float = 0.0,
        color: bool = False,
        show_headers: bool = True,
        output_path: str | None = None,
) -> int:
    """Run ``command`` on each host in turn.

    Args:
        hosts: Host tokens.
        command: Remote command; None opens an interactive session per host.
        transport: Transport plugin used to build each command line.
        binary: Override for the transport executable.
        user: Optional remote user name.
        key: Optional identity file.
        options: Extra transport options.
        delay: Seconds to pause after each host.
        color: Colourise headers.
        show_headers: Print the host header before each run.
        output_path: Append output to this file instead of stdout.

    Returns:
        Number of hosts whose transport exited non-zero or could not run.

    Raises:
        FatalError: If the output can't be opened or written.
    """
    logger.debug("Running sequentially")
    failures = 0
    out = _open_output(output_path)
    try:
        for host in hosts:
            if show_headers:
                _write_header(out, format_block_header(host, 0, color))
            flush_std_streams()

            argv = transport.build_command(host, command, binary=binary, user=user, key=key, options=options)
            tty_fd = open_tty()
            try:
                proc = subprocess.run(
                    argv,
                    stdin=tty_fd,
                    stdout=out,
                    stderr=subprocess.STDOUT,
                )
                if proc.returncode != 0:
                    failures += 1
                    logger.warning("%s exited with status %d on %s", argv[0], proc.returncode, host)
            except OSError as e:
                failures += 1
                logger.warning("Failed to exec %s for %s: %s", argv[0], host, e)
            finally:
                if tty_fd is not None:
                    os.close(tty_fd)

            if show_headers:
                _write_header(out, "\n")

            if delay > 0:
                time.sleep(delay)
    finally:
        if out is not None:
            out.close()
    return failures
