"""Remote transports (ssh, rsh) registered as SAF plugins."""
