"""Tests for sshall.config module."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml

from sshall.config import (
    ConfigError,
    SshallConfig,
    validate_color,
    validate_delay,
    validate_parallel,
)


def _write_config(path: Path, data: dict) -> Path:
    path.write_text(yaml.dump(data))
    return path


def test_defaults(tmp_path: Path):
    config = SshallConfig(tmp_path / "missing.yaml")
    assert config.transport == "ssh"
    assert config.parallel == 0
    assert config.delay == 0.0
    assert config.color == "auto"
    assert config.tmp_dir is None
    assert config.transport_settings() == {"binary": None, "user": None, "key": None, "options": []}


def test_load_yaml(tmp_path: Path):
    path = _write_config(tmp_path / "config.yaml", {
        "transport": "rsh",
        "parallel": 8,
        "delay": 0.25,
        "color": "Never",
        "tmp_dir": str(tmp_path / "scratch"),
    })
    config = SshallConfig(path)
    assert config.transport == "rsh"
    assert config.parallel == 8
    assert config.delay == 0.25
    assert config.color == "never"
    assert config.tmp_dir == str(tmp_path / "scratch")


def test_empty_file(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert SshallConfig(path).parallel == 0


def test_transport_settings(tmp_path: Path):
    path = _write_config(tmp_path / "config.yaml", {
        "ssh": {
            "binary": "/opt/bin/ssh",
            "user": "deploy",
            "key": "~/.ssh/fleet",
            "options": ["-p", "2222"],
        },
    })
    settings = SshallConfig(path).transport_settings("ssh")
    assert settings == {
        "binary": "/opt/bin/ssh",
        "user": "deploy",
        "key": os.path.expanduser("~/.ssh/fleet"),
        "options": ["-p", "2222"],
    }
    assert SshallConfig(path).transport_settings("rsh")["binary"] is None


def test_tmp_dir_expands_user(tmp_path: Path):
    path = _write_config(tmp_path / "config.yaml", {"tmp_dir": "~/tmp"})
    assert SshallConfig(path).tmp_dir == os.path.expanduser("~/tmp")


def test_invalid_parallel_in_file(tmp_path: Path):
    path = _write_config(tmp_path / "config.yaml", {"parallel": "lots"})
    with pytest.raises(ConfigError):
        SshallConfig(path).parallel


@pytest.mark.parametrize("value, expected", [(0, 0), (1, 1), (25, 25), ("4", 4), (3.0, 3)])
def test_validate_parallel(value, expected):
    assert validate_parallel(value) == expected


@pytest.mark.parametrize("value", [-1, "x", None, True, 2.5])
def test_validate_parallel_rejects(value):
    with pytest.raises(ConfigError):
        validate_parallel(value)


@pytest.mark.parametrize("value, expected", [(0, 0.0), ("1.5", 1.5), (2, 2.0)])
def test_validate_delay(value, expected):
    assert validate_delay(value) == expected


@pytest.mark.parametrize("value", [-0.5, "soon", None, False, float("nan"), float("inf")])
def test_validate_delay_rejects(value):
    with pytest.raises(ConfigError):
        validate_delay(value)


def test_validate_color():
    assert validate_color("ALWAYS") == "always"
    with pytest.raises(ConfigError, match="Invalid color mode"):
        validate_color("sometimes")


def test_transport_section_must_be_mapping(tmp_path: Path):
    path = _write_config(tmp_path / "config.yaml", {"ssh": "foo"})
    with pytest.raises(ConfigError, match="'ssh' must be a mapping"):
        SshallConfig(path).transport_settings("ssh")


def test_transport_options_must_be_list(tmp_path: Path):
    path = _write_config(tmp_path / "config.yaml", {"ssh": {"options": "-p 2222"}})
    with pytest.raises(ConfigError, match="options must be a list"):
        SshallConfig(path).transport_settings()


def test_numeric_options_become_strings(tmp_path: Path):
    path = _write_config(tmp_path / "config.yaml", {"ssh": {"options": ["-p", 2222]}})
    assert SshallConfig(path).transport_settings()["options"] == ["-p", "2222"]


def test_top_level_must_be_mapping(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(["ssh", "rsh"]))
    with pytest.raises(ConfigError, match="expected a mapping"):
        SshallConfig(path)
