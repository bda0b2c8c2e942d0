"""Exceptions raised during startup. Anything here is fatal."""


class ServorError(Exception):
    """Base class for servor startup errors."""


class ConfigError(ServorError):
    """Bad command-line values or missing TLS material."""


class WatchError(ServorError):
    """The watch target is missing or is not a directory."""
