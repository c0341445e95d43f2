"""sshall: run one command on many hosts through ssh."""

__version__ = "0.3.0"

PROG_NAME = "sshall"
