"""Host token source.

Hosts are read lazily from a stream, one whitespace-delimited token at
a time, so that a long (or interactively typed) host list starts dispatching
before the input ends.
"""

from __future__ import annotations

import io
import logging
import os
import re
from collections import deque
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, TextIO

logger = logging.getLogger(__name__)

# space, tab, newline, carriage return and NUL all separate host tokens
HOST_DELIMITERS = " \t\n\r\0"
_DELIMITER_RE = re.compile(r"[ \t\n\r\x00]+")


class HostResolutionError(Exception):
    """Error while opening a host source."""

    pass


class HostSource:
    """Lazy sequence of host tokens read from a text or binary stream.

    Lines from a binary stream are decoded with :func:`os.fsdecode`, so bytes
    that are not valid in the filesystem encoding survive as surrogate escapes and
    are encoded back unchanged when the host is passed to the transport.

    The source is consumed as it is read; to start over, open the stream
    again and build a new source.
    """

    def __init__(self, stream: TextIO | BinaryIO):
        self._stream = stream
        self._pending: deque[str] = deque()
        self._exhausted = False

    @classmethod
    def from_list(cls, hosts: Iterable[str]) -> HostSource:
        """Build a source over an in-memory host list (e.g. ``--hosts a,b,c``)."""
        return cls(io.StringIO("\n".join(hosts)))

    def next(self) -> str | None:
        """Return the next host token, or None once the input is exhausted."""
        while not self._pending:
            if self._exhausted:
                return None
            line = self._stream.readline()
            if not line:
                self._exhausted = True
                return None
            if isinstance(line, bytes):
                line = os.fsdecode(line)
            self._pending.extend(tok for tok in _DELIMITER_RE.split(line) if tok)
        return self._pending.popleft()

    def __iter__(self) -> Iterator[str]:
        while (host := self.next()) is not None:
            yield host


def split_hosts_arg(hosts: str) -> list[str]:
    """Split a comma-separated ``--hosts`` value, dropping blanks."""
    return [h.strip() for h in hosts.split(",") if h.strip()]


@contextmanager
def open_host_source(path: str | Path) -> Iterator[HostSource]:
    """Open a hosts file and yield a :class:`HostSource` over it.

    Raises:
        HostResolutionError: If the file does not exist or can't be read.
    """
    file_path = Path(path)
    try:
        f = file_path.open("rb")
    except OSError as e:
        raise HostResolutionError("Failed to open %s: %s" % (file_path, e.strerror))
    logger.debug("Opened host input %s", file_path)
    with f:
        yield HostSource(f)
