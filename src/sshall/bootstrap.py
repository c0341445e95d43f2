"""Bootstrap sshall's transport plugins using SAF's desktop init."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from scitrera_app_framework import Variables, register_plugin, get_extensions
from scitrera_app_framework.util import find_types_in_modules

if TYPE_CHECKING:
    from sshall.transports.base import TransportPlugin

logger = logging.getLogger(__name__)

EXT_TRANSPORT = "sshall.transport"

# Module-level singleton for the sshall Variables instance
_variables: Variables | None = None


def init_sshall(v: Variables | None = None, log_level: str = "WARNING") -> Variables:
    """Initialize sshall's plugin system.

    Args:
        v: Optional pre-existing Variables instance to reuse.
        log_level: SAF log level (default WARNING to reduce verbosity).

    Returns:
        The initialized Variables instance.
    """
    global _variables

    if _variables is not None and v is None:
        return _variables

    if v is None:
        from scitrera_app_framework import init_framework_desktop
        v = init_framework_desktop("sshall", log_level=log_level, fault_handler=False, shutdown_hooks=False,
                                   fixed_logger=logger)

    _variables = v

    # Import here to avoid circular imports
    from sshall.transports.base import TransportPlugin

    # Auto-discover all TransportPlugin subclasses in sshall.transports
    for transport_cls in find_types_in_modules("sshall.transports", TransportPlugin):
        if not transport_cls.transport_name:
            continue
        try:
            register_plugin(transport_cls, v=v)
            logger.debug("Registered transport: %s", transport_cls.__name__)
        except (ValueError, TypeError) as e:
            logger.debug("Skipping transport %s: %s", transport_cls.__name__, e)

    return v


def get_variables() -> Variables:
    """Get the sshall Variables instance, initializing if needed."""
    global _variables
    if _variables is None:
        init_sshall()
    return _variables


def get_transport(name: str, v: Variables | None = None) -> TransportPlugin:
    """Get a transport by name (e.g. "ssh", "rsh").

    Raises:
        ValueError: If the transport is not found
    """
    if v is None:
        v = get_variables()

    all_transports = get_extensions(EXT_TRANSPORT, v=v)
    for _plugin_name, transport in all_transports.items():
        if transport.transport_name == name:
            return transport

    available = sorted(t.transport_name for t in all_transports.values())
    raise ValueError("Unknown transport: %r. Available: %s" % (name, available))


def list_transports(v: Variables | None = None) -> list[str]:
    """List all registered transport names."""
    if v is None:
        v = get_variables()

    all_transports = get_extensions(EXT_TRANSPORT, v=v)
    return sorted(t.transport_name for t in all_transports.values())
