"""Shared CLI infrastructure: utilities, Click types, decorators."""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Iterator

import click

from sshall.utils import setup_logging
from sshall.utils.cli_formatters import COLOR_ALWAYS, COLOR_MODES

logger = logging.getLogger(__name__)

CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    # options stop at the first word of the remote command
    "allow_interspersed_args": False,
}


def _setup_logging(verbose: bool, quiet: bool = False):
    """Configure logging based on verbosity (``-v`` / ``-q``)."""
    setup_logging(verbose=verbose, quiet=quiet)


class TransportNameType(click.ParamType):
    """Click parameter type with shell completion for transport names."""

    name = "transport"

    def shell_complete(self, ctx, param, incomplete):
        """Return completion items for registered transports."""
        try:
            from sshall.bootstrap import list_transports
            return [
                click.shell_completion.CompletionItem(t)
                for t in list_transports()
                if t.startswith(incomplete)
            ]
        except Exception:
            return []


TRANSPORT_NAME = TransportNameType()


def host_options(f):
    """Add --hosts / --file options to a command."""
    f = click.option("--file", "-f", "hosts_file", default=None,
                     type=click.Path(dir_okay=False),
                     help="Read hosts from FILE instead of standard input")(f)
    f = click.option("--hosts", "-H", default=None,
                     help="Comma-separated host list instead of reading hosts from input")(f)
    return f


def output_options(f):
    """Add presentation options to a command."""
    f = click.option("--output", "-o", "output_path", default=None,
                     type=click.Path(dir_okay=False),
                     help="Append host blocks to FILE instead of standard output")(f)
    f = click.option("--color", "-c", default=None, is_flag=False, flag_value=COLOR_ALWAYS,
                     type=click.Choice(COLOR_MODES, case_sensitive=False),
                     help="Colour host headers and failed blocks (default: auto; bare -c = always)")(f)
    return f


@contextmanager
def _open_hosts(hosts: str | None, hosts_file: str | None) -> Iterator:
    """Yield the host source selected by --hosts, --file, or stdin."""
    from sshall.hosts import HostResolutionError, HostSource, open_host_source, split_hosts_arg

    if hosts:
        yield HostSource.from_list(split_hosts_arg(hosts))
        return
    if hosts_file:
        try:
            with open_host_source(hosts_file) as source:
                yield source
        except HostResolutionError as e:
            click.echo("Error: %s" % e, err=True)
            sys.exit(1)
        return
    yield HostSource(sys.stdin.buffer)


def _join_command(words: tuple[str, ...]) -> str | None:
    """Join the remaining command-line words into one remote command string."""
    if not words:
        return None
    return " ".join(words)
