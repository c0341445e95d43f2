"""OpenSSH transport."""

from __future__ import annotations

from sshall.transports.base import TransportPlugin

# connection timeout (seconds) for non-responsive hosts
SSH_CONNECT_TIMEOUT = 2


class SshTransport(TransportPlugin):
    """Runs commands through the ``ssh`` client.

    Host key checking is off and X11 forwarding disabled so a fan-out over a
    fresh fleet doesn't stop at prompts or open stray X connections.
    """

    transport_name = "ssh"
    default_binary = "ssh"

    def fixed_options(self) -> list[str]:
        return [
            "-o", "ConnectTimeout=%d" % SSH_CONNECT_TIMEOUT,
            "-o", "StrictHostKeyChecking=no",
            "-o", "ForwardX11=no",
        ]

    def identity_options(self, key: str | None) -> list[str]:
        return ["-i", key] if key else []
