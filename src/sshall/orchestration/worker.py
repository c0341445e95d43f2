"""Per-host worker process.

Each host gets its own worker process.  The worker runs the transport
command with stdout/stderr captured into a private temp file, then takes the
output lock and copies header + captured bytes to the shared output in one
piece.  Workers never share buffers; only the lock file is common.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
import tempfile
import time
from contextlib import ExitStack
from dataclasses import dataclass
from typing import BinaryIO

from sshall.orchestration import (
    EXIT_FATAL,
    EXIT_NOT_EXECUTABLE,
    EXIT_NOT_FOUND,
    FatalError,
    flush_std_streams,
    open_tty,
)
from sshall.orchestration.lock import OutputLock
from sshall.orchestration.redirect import (
    STDERR_FILENO,
    STDIN_FILENO,
    STDOUT_FILENO,
    StreamRedirect,
)
from sshall.utils.cli_formatters import error_body_style, format_block_header

logger = logging.getLogger(__name__)

# bytes copied per write when publishing a buffer
CHUNK_SIZE = 64 * 1024


@dataclass
class WorkerJob:
    """Everything a worker process needs; must stay picklable."""

    host: str
    argv: list[str]
    lock_path: str
    output_path: str | None = None
    tmp_dir: str | None = None
    prog_name: str = "sshall"
    color: bool = False
    show_header: bool = True
    verbose: bool = False
    quiet: bool = False


def buffer_prefix(prog_name: str, host: str) -> str:
    """Temp file prefix for a host's buffer; path separators are not allowed in it."""
    return "%s-%s-" % (prog_name, host.replace(os.sep, "_"))


class Worker:
    """Runs the transport for one host and publishes its captured output."""

    def __init__(self, job: WorkerJob):
        self.job = job

    def run(self) -> int:
        """Run the transport, publish the block, remove the buffer.

        Returns:
            The transport's exit status (127/126 when it could not be executed).

        Raises:
            FatalError: On temp file, rewind, redirection or lock failures.
        """
        job = self.job
        try:
            fd, path = tempfile.mkstemp(prefix=buffer_prefix(job.prog_name, job.host), dir=job.tmp_dir)
        except OSError as e:
            raise FatalError("Failed to open tempfile for %s: %s" % (job.host, e.strerror))
        logger.debug("Using temp file %s", path)

        try:
            with os.fdopen(fd, "w+b") as buffer:
                t0 = time.monotonic()
                status = self._run_transport(buffer.fileno())
                elapsed = time.monotonic() - t0
                if status == 0:
                    logger.debug("  %s <- %s OK (%.1fs)", job.argv[0], job.host, elapsed)
                else:
                    logger.debug("  %s <- %s FAILED rc=%d (%.1fs)", job.argv[0], job.host, status, elapsed)

                try:
                    buffer.seek(0)
                except OSError as e:
                    raise FatalError("Seek failed on %s: %s" % (path, e.strerror))

                lock = OutputLock.attach(job.lock_path)
                try:
                    lock.with_lock(self._publish, buffer, status)
                finally:
                    lock.close()
        finally:
            logger.debug("Removing tempfile %s", path)
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
        return status

    def _run_transport(self, buffer_fd: int) -> int:
        """Run the transport with stdout+stderr in the buffer and stdin on the tty."""
        job = self.job
        logger.debug("  %s -> %s: %s", job.argv[0], job.host, " ".join(job.argv))
        tty_fd = open_tty()
        flush_std_streams()
        try:
            # nothing may be logged inside this block: fd 2 is the buffer
            with ExitStack() as stack:
                stack.enter_context(StreamRedirect(STDOUT_FILENO, buffer_fd))
                stack.enter_context(StreamRedirect(STDERR_FILENO, STDOUT_FILENO))
                if tty_fd is not None:
                    stack.enter_context(StreamRedirect(STDIN_FILENO, tty_fd))
                try:
                    return subprocess.run(job.argv).returncode
                except OSError as e:
                    status = EXIT_NOT_EXECUTABLE if isinstance(e, PermissionError) else EXIT_NOT_FOUND
                    msg = "%s: Failed to exec %s: %s\n" % (job.prog_name, job.argv[0], e.strerror or e)
                    os.write(STDERR_FILENO, msg.encode())
                    return status
        finally:
            if tty_fd is not None:
                os.close(tty_fd)

    def _open_output(self) -> BinaryIO:
        """Open the shared output for appending.

        Raises:
            FatalError: If the output file (or a duplicate of fd 1) can't be opened.
        """
        try:
            if self.job.output_path:
                return open(self.job.output_path, "ab")
            # a duplicate so closing the wrapper leaves fd 1 alone
            return os.fdopen(os.dup(STDOUT_FILENO), "wb")
        except OSError as e:
            raise FatalError("Failed to open output %s: %s"
                             % (self.job.output_path or "stdout", e.strerror or e))

    def _publish(self, buffer: BinaryIO, status: int) -> None:
        """Write header + buffer to the shared output.  Caller holds the lock."""
        job = self.job
        start, reset = error_body_style(job.color and status != 0)
        out = self._open_output()
        try:
            with out:
                if job.show_header:
                    # host names may carry undecodable input bytes
                    out.write(os.fsencode(format_block_header(job.host, status, job.color)))
                if start:
                    out.write(start.encode())
                shutil.copyfileobj(buffer, out, CHUNK_SIZE)
                if reset:
                    out.write(reset.encode())
                if job.show_header:
                    out.write(b"\n")
                out.flush()
        except OSError as e:
            raise FatalError("Failed to write output for %s: %s" % (job.host, e.strerror or e))


def run_job(job: WorkerJob) -> None:
    """Process entry point for a worker.

    Exits 0 once the block is written (whatever the remote status was) and
    :data:`EXIT_FATAL` on infrastructure failures so the dispatcher can stop.
    """
    from sshall.utils import setup_logging

    setup_logging(verbose=job.verbose, quiet=job.quiet)
    try:
        Worker(job).run()
    except FatalError as e:
        logger.critical("%s: %s", job.host, e)
        sys.exit(EXIT_FATAL)
