"""Presentation layer formatting for sshall output blocks."""

from __future__ import annotations

from typing import IO

import click

COLOR_ALWAYS = "always"
COLOR_AUTO = "auto"
COLOR_NEVER = "never"
COLOR_MODES = (COLOR_ALWAYS, COLOR_AUTO, COLOR_NEVER)

HEADER_RULE = "-------"
ANSI_RESET = "\x1b[0m"


def resolve_color(mode: str, stream: IO | None = None) -> bool:
    """Decide whether to emit colour for ``mode`` on ``stream``.

    ``auto`` enables colour only when the stream is a terminal.
    """
    mode = (mode or COLOR_AUTO).lower()
    if mode == COLOR_ALWAYS:
        return True
    if mode == COLOR_NEVER:
        return False
    if mode != COLOR_AUTO:
        raise ValueError("Invalid color mode: %s" % mode)
    if stream is None:
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def format_block_header(host: str, returncode: int = 0, color: bool = False) -> str:
    """Format the two header lines of a host's output block.

    A non-zero ``returncode`` is shown on the rule line so failed hosts stand
    out even without colour.
    """
    rule = HEADER_RULE if returncode == 0 else "%s [exit %d]" % (HEADER_RULE, returncode)
    if color:
        host = click.style(host, fg="red", bold=True)
        rule = click.style(rule, fg="cyan", bold=True)
    return "%s\n%s\n" % (host, rule)


def error_body_style(color: bool) -> tuple[str, str]:
    """Return (start, reset) escape sequences for an error block body."""
    if not color:
        return "", ""
    return click.style("", fg="white", bg="red", bold=True, reset=False), ANSI_RESET
