"""sshall CLI: run one command on many hosts."""

from __future__ import annotations

import logging
import sys

import click

from sshall import PROG_NAME, __version__
from sshall.config import DEFAULT_PARALLEL_WIDTH
from ._common import (
    CONTEXT_SETTINGS,
    TRANSPORT_NAME,
    _join_command,
    _open_hosts,
    _setup_logging,
    host_options,
    output_options,
)

logger = logging.getLogger(__name__)


@click.command(context_settings=CONTEXT_SETTINGS)
@host_options
@output_options
@click.option("--delay", "-d", type=float, default=None,
              help="Seconds to wait between hosts")
@click.option("--parallel", "-p", type=int, default=None, is_flag=False,
              flag_value=DEFAULT_PARALLEL_WIDTH,
              help="Run on up to N hosts at once (0 = one at a time; bare -p = %d)" % DEFAULT_PARALLEL_WIDTH)
@click.option("--interactive", "-i", is_flag=True,
              help="Open an interactive session on each host in turn")
@click.option("--transport", "-t", type=TRANSPORT_NAME, default=None,
              help="Remote shell to use (ssh, rsh)")
@click.option("--user", "-u", default=None, help="Remote user name")
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False),
              help="Config file (default ~/.config/sshall/config.yaml)")
@click.option("--quiet", "-q", is_flag=True, help="Omit host headers and informational output")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose/debug output")
@click.version_option(__version__, prog_name=PROG_NAME)
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def main(ctx, hosts, hosts_file, output_path, color, delay, parallel, interactive,
         transport, user, config_path, quiet, verbose, command):
    """Run COMMAND on every host read from standard input.

    Hosts are separated by whitespace or newlines.  With --parallel N the
    command runs on up to N hosts at once and each host's output is printed
    as one uninterrupted block.
    """
    from sshall.bootstrap import get_transport, init_sshall
    from sshall.config import ConfigError, SshallConfig, validate_delay, validate_parallel
    from sshall.orchestration import FatalError
    from sshall.utils.cli_formatters import resolve_color

    _setup_logging(verbose, quiet)

    try:
        config = SshallConfig(config_path)
        ceiling = validate_parallel(parallel if parallel is not None else config.parallel)
        pause = validate_delay(delay if delay is not None else config.delay)
        color_mode = (color or config.color).lower()
    except ConfigError as e:
        raise click.ClickException(str(e))

    remote_command = _join_command(command)
    if interactive:
        if remote_command:
            logger.info("Ignoring commands in interactive mode")
        remote_command = None
        if ceiling:
            logger.info("Interactive mode runs one host at a time")
            ceiling = 0
    elif remote_command is None:
        raise click.UsageError("No command given.", ctx=ctx)

    transport_name = transport or config.transport
    v = init_sshall()
    try:
        transport_plugin = get_transport(transport_name, v=v)
    except ValueError as e:
        raise click.ClickException(str(e))

    try:
        settings = config.transport_settings(transport_name)
    except ConfigError as e:
        raise click.ClickException(str(e))
    if user:
        settings["user"] = user

    use_color = resolve_color(color_mode, None if output_path else sys.stdout)
    common = dict(
        transport=transport_plugin,
        delay=pause,
        color=use_color,
        show_headers=not quiet,
        output_path=output_path,
        **settings,
    )

    with _open_hosts(hosts, hosts_file) as source:
        try:
            if ceiling == 0:
                from sshall.orchestration.sequential import run_sequential
                run_sequential(source, remote_command, **common)
            else:
                from sshall.orchestration.throttle import dispatch
                logger.debug("Running %d in parallel", ceiling)
                dispatch(
                    source, remote_command, ceiling,
                    tmp_dir=config.tmp_dir,
                    prog_name=PROG_NAME,
                    verbose=verbose,
                    quiet=quiet,
                    **common,
                )
        except FatalError as e:
            click.echo("Error: %s" % e, err=True)
            sys.exit(1)
