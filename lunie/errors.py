"""Exceptions raised by the Lunie core."""


class LunieError(Exception):
    """Base class for Lunie errors."""
    pass


class UnsupportedTokenError(LunieError, ValueError):
    """Raised when data is requested for a denomination the network does not serve."""
    pass


class UnknownNetworkError(LunieError, KeyError):
    """Raised when a network id has no known configuration."""

    def __str__(self):
        return f"Unknown network: {self.args[0]}" if self.args else "Unknown network"


class CorruptCacheError(LunieError):
    """A persisted state record could not be decoded."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Corrupt persisted state under {key}: {reason}")
        self.key = key
        self.reason = reason
