"""
Exceptions raised by craft-audit.
"""


class CraftAuditError(Exception):
    """Base class for all craft-audit errors."""


class ConfigError(CraftAuditError):
    """Raised when a configuration file cannot be read or is invalid."""

    def __init__(self, message: str, path: str = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)
