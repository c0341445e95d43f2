"""Legacy rsh transport."""

from __future__ import annotations

from sshall.transports.base import TransportPlugin


class RshTransport(TransportPlugin):
    """Runs commands through ``rsh`` with stdin detached (``-n``)."""

    transport_name = "rsh"
    default_binary = "rsh"

    def fixed_options(self) -> list[str]:
        return ["-n"]
