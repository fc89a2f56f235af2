"""Exception types raised by azure-dns-sync.

Load-time errors (ConfigReadError, ParseError, ValidationError) are fatal to
startup. Run-time errors (ResolutionError, ProviderError) abort the current
reconciliation cycle and propagate to the scheduler.
"""

from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base class for all azure-dns-sync errors."""


class ConfigReadError(SyncError):
    """A configuration file could not be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot read {path}: {reason}")
        self.path = path


class ParseError(SyncError):
    """A configuration document is malformed."""


class ValidationError(SyncError):
    """A required configuration field is missing or invalid."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class ResolutionError(SyncError):
    """Looking up a hostname failed."""

    def __init__(self, hostname: str, reason: str):
        super().__init__(f"Failed to resolve {hostname}: {reason}")
        self.hostname = hostname


class ProviderError(SyncError):
    """The DNS provider rejected or failed an operation."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ProviderError):
    """Fetching an access token from the identity endpoint failed."""
