"""User configuration management for sshall."""

from __future__ import annotations

import logging
import math
import os
from pathlib import Path
from typing import Any

from vpd.next.util import read_yaml

from sshall.utils.cli_formatters import COLOR_AUTO, COLOR_MODES

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "sshall"
DEFAULT_TRANSPORT = "ssh"
# ceiling used when -p is given without a value
DEFAULT_PARALLEL_WIDTH = 10


class ConfigError(Exception):
    """Invalid configuration value."""

    pass


def validate_parallel(value: Any) -> int:
    """Validate a concurrency ceiling; 0 selects sequential execution.

    Raises:
        ConfigError: If the value is not a non-negative integer.
    """
    if isinstance(value, bool):
        raise ConfigError("Invalid parallel count: %r" % (value,))
    try:
        ceiling = int(value)
    except (TypeError, ValueError):
        raise ConfigError("Invalid parallel count: %r" % (value,))
    if isinstance(value, float) and not value.is_integer():
        raise ConfigError("Invalid parallel count: %r" % (value,))
    if ceiling < 0:
        raise ConfigError("Parallel count must not be negative: %d" % ceiling)
    return ceiling


def validate_delay(value: Any) -> float:
    """Validate an inter-host delay in seconds.

    Raises:
        ConfigError: If the value is negative, infinite or not a number.
    """
    if isinstance(value, bool):
        raise ConfigError("Invalid delay: %r" % (value,))
    try:
        delay = float(value)
    except (TypeError, ValueError):
        raise ConfigError("Invalid delay: %r" % (value,))
    if math.isnan(delay) or math.isinf(delay) or delay < 0:
        raise ConfigError("Invalid delay: %r" % (value,))
    return delay


def validate_color(value: Any) -> str:
    mode = str(value).lower()
    if mode not in COLOR_MODES:
        raise ConfigError("Invalid color mode: %s" % value)
    return mode


class SshallConfig:
    """Manages sshall user configuration (``~/.config/sshall/config.yaml``)."""

    def __init__(self, config_path: Path | str | None = None):
        self.config_path = Path(config_path) if config_path else (DEFAULT_CONFIG_DIR / "config.yaml")
        self._data: dict[str, Any] = {}
        self._load()

    def _load(self):
        if self.config_path.exists():
            data = read_yaml(str(self.config_path)) or {}
            if not isinstance(data, dict):
                raise ConfigError("%s: expected a mapping at the top level" % self.config_path)
            self._data = data
            logger.debug("Loaded config from %s", self.config_path)
        else:
            self._data = {}

    @property
    def transport(self) -> str:
        return self._data.get("transport", DEFAULT_TRANSPORT)

    @property
    def parallel(self) -> int:
        return validate_parallel(self._data.get("parallel", 0))

    @property
    def delay(self) -> float:
        return validate_delay(self._data.get("delay", 0.0))

    @property
    def color(self) -> str:
        return validate_color(self._data.get("color", COLOR_AUTO))

    @property
    def tmp_dir(self) -> str | None:
        tmp = self._data.get("tmp_dir")
        return os.path.expanduser(tmp) if tmp else None

    def transport_settings(self, name: str | None = None) -> dict[str, Any]:
        """Per-transport section (``ssh:`` / ``rsh:``) with binary, user, key, options.

        Raises:
            ConfigError: If the section is not a mapping or ``options`` is not a list.
        """
        name = name or self.transport
        section = self._data.get(name, {}) or {}
        if not isinstance(section, dict):
            raise ConfigError("Config section %r must be a mapping, got %r" % (name, section))
        options = section.get("options", []) or []
        if not isinstance(options, list):
            raise ConfigError("%s.options must be a list, got %r" % (name, options))
        key = section.get("key")
        return {
            "binary": section.get("binary"),
            "user": section.get("user"),
            "key": os.path.expanduser(key) if key else None,
            "options": [str(opt) for opt in options],
        }

