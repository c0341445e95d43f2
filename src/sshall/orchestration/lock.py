"""Cross-process output lock.

Workers are separate processes, so the shared output stream is guarded by
an advisory POSIX record lock (``fcntl.lockf``) on a dedicated lock file
created once per dispatcher run.  Record locks belong to the process that
takes them, which is what makes them usable across forked/spawned workers
(``flock`` locks would be shared through an inherited descriptor).
"""

from __future__ import annotations

import fcntl
import logging
import os
import tempfile
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from sshall.orchestration import FatalError

logger = logging.getLogger(__name__)


class OutputLock:
    """Handle on the per-run lock file."""

    def __init__(self, path: str, fd: int, owner: bool = False):
        self.path = path
        self._fd: int | None = fd
        self._owner = owner
        self._held = False

    @classmethod
    def create(cls, prog_name: str, tmp_dir: str | None = None) -> OutputLock:
        """Create a uniquely named lock file in ``tmp_dir``.

        The returned lock owns the file and removes it on :meth:`close`.

        Raises:
            FatalError: If the file can't be created.
        """
        try:
            fd, path = tempfile.mkstemp(prefix="%s-lockfile-" % prog_name, dir=tmp_dir)
        except OSError as e:
            raise FatalError("Failed to open lockfile in %s: %s"
                             % (tmp_dir or tempfile.gettempdir(), e.strerror))
        logger.debug("Using lockfile %s", path)
        return cls(path, fd, owner=True)

    @classmethod
    def attach(cls, path: str) -> OutputLock:
        """Open an existing lock file (from a worker process).

        Raises:
            FatalError: If the file can't be opened.
        """
        try:
            fd = os.open(path, os.O_RDWR | os.O_CLOEXEC)
        except OSError as e:
            raise FatalError("Failed to open lockfile %s: %s" % (path, e.strerror))
        return cls(path, fd)

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        """Block until the lock is ours."""
        if self._fd is None:
            raise FatalError("Lockfile %s is closed" % self.path)
        try:
            fcntl.lockf(self._fd, fcntl.LOCK_EX)
        except OSError as e:
            raise FatalError("Unable to obtain file lock %s: %s" % (self.path, e.strerror))
        self._held = True
        logger.debug("Output locked")

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        try:
            fcntl.lockf(self._fd, fcntl.LOCK_UN)
        except OSError as e:
            raise FatalError("Unable to free file lock %s: %s" % (self.path, e.strerror))
        logger.debug("Output unlocked")

    @contextmanager
    def locked(self) -> Iterator[OutputLock]:
        """Hold the lock for the body of a ``with`` block."""
        self.acquire()
        try:
            yield self
        finally:
            self.release()

    def with_lock(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """Run ``fn`` while holding the lock; the lock is released even if it raises."""
        with self.locked():
            return fn(*args, **kwargs)

    def close(self) -> None:
        """Close the descriptor; the owning lock also removes the file."""
        if self._fd is None:
            return
        self.release()
        fd, self._fd = self._fd, None
        os.close(fd)
        if self._owner:
            logger.debug("Removing lockfile %s", self.path)
            try:
                os.remove(self.path)
            except FileNotFoundError:
                pass

    def __enter__(self) -> OutputLock:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
