"""Scoped redirection of the standard file descriptors.

A :class:`StreamRedirect` rebinds one of fd 0/1/2 to another descriptor for
the duration of a ``with`` block and puts the original back afterwards, on
every exit path.  Child processes started inside the block inherit the
redirected descriptor.
"""

from __future__ import annotations

import logging
import os
import sys

from sshall.orchestration import FatalError

logger = logging.getLogger(__name__)

STDIN_FILENO = 0
STDOUT_FILENO = 1
STDERR_FILENO = 2


def _python_stream(fd: int):
    if fd == STDOUT_FILENO:
        return sys.stdout
    if fd == STDERR_FILENO:
        return sys.stderr
    return None


def _flush(fd: int) -> None:
    stream = _python_stream(fd)
    if stream is not None and not stream.closed:
        stream.flush()


class StreamRedirect:
    """Guard that points ``fd`` at ``target_fd`` and restores it on exit.

    Args:
        fd: Descriptor to rebind (usually 0, 1 or 2).
        target_fd: Descriptor to duplicate onto ``fd``.

    Raises:
        FatalError: If the descriptor can't be duplicated or restored.
    """

    def __init__(self, fd: int, target_fd: int):
        self.fd = fd
        self.target_fd = target_fd
        self._saved: int | None = None

    def __enter__(self) -> StreamRedirect:
        _flush(self.fd)
        try:
            self._saved = os.dup(self.fd)
        except OSError as e:
            raise FatalError("Failed to duplicate file descriptor %d: %s" % (self.fd, e.strerror))
        try:
            os.dup2(self.target_fd, self.fd)
        except OSError as e:
            os.close(self._saved)
            self._saved = None
            raise FatalError("Failed to redirect file descriptor %d to %d: %s"
                             % (self.fd, self.target_fd, e.strerror))
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()

    def restore(self) -> None:
        """Put the original binding back.  Safe to call more than once."""
        if self._saved is None:
            return
        saved, self._saved = self._saved, None
        _flush(self.fd)
        try:
            os.dup2(saved, self.fd)
        except OSError as e:
            raise FatalError("Failed to restore file descriptor %d: %s" % (self.fd, e.strerror))
        finally:
            os.close(saved)
