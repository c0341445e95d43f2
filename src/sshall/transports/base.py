"""Base class for sshall remote transports."""

from __future__ import annotations

import logging
from abc import abstractmethod
from logging import Logger

from scitrera_app_framework import Plugin, Variables

logger = logging.getLogger(__name__)

EXT_TRANSPORT = "sshall.transport"


class TransportPlugin(Plugin):
    """Abstract base class for the remote-execution tools sshall shells out to.

    Each transport is an SAF Plugin that registers as a multi-extension
    under the 'sshall.transport' extension point.

    Subclasses must define:
        - transport_name: str identifier (e.g. "ssh", "rsh")
        - default_binary: executable looked up on PATH
        - fixed_options(): constant flags passed on every invocation
    """

    eager = False  # don't initialize until requested

    # --- Subclass must define ---
    transport_name: str = ""
    default_binary: str = ""

    # --- SAF Plugin interface ---

    def name(self) -> str:
        return "sshall.transport.%s" % self.transport_name

    def extension_point_name(self, v: Variables) -> str:
        return EXT_TRANSPORT

    def is_enabled(self, v: Variables) -> bool:
        # False for multi-extension plugins, otherwise SAF's single-extension
        # cache short-circuits the other transports.
        return False

    def is_multi_extension(self, v: Variables) -> bool:
        return True

    def initialize(self, v: Variables, logger: Logger) -> TransportPlugin:
        return self

    # --- Transport interface ---

    @abstractmethod
    def fixed_options(self) -> list[str]:
        """Flags passed before the host on every invocation."""
        ...

    def identity_options(self, key: str | None) -> list[str]:
        """Options selecting an identity file; unsupported by default."""
        if key:
            logger.warning("Transport %s does not support identity files; ignoring %s",
                           self.transport_name, key)
        return []

    def build_command(
            self,
            host: str,
            command: str | None,
            binary: str | None = None,
            user: str | None = None,
            key: str | None = None,
            options: list[str] | None = None,
    ) -> list[str]:
        """Build the argv for running ``command`` on ``host``.

        Args:
            host: Remote host token.
            command: Remote command string; None opens a login session.
            binary: Override for the transport executable.
            user: Optional remote user (``-l user``).
            key: Optional identity file.
            options: Extra options inserted before the host.

        Returns:
            List of command parts suitable for subprocess.
        """
        cmd = [binary or self.default_binary]
        cmd.extend(self.fixed_options())
        cmd.extend(self.identity_options(key))
        if user:
            cmd.extend(["-l", user])
        if options:
            cmd.extend(options)
        cmd.append(host)
        if command is not None:
            cmd.append(command)
        return cmd
