"""Error taxonomy for the dispatch core."""

from __future__ import annotations

from typing import Optional


class FeedhookError(Exception):
    """Base class for all feedhook errors."""


class ConfigurationError(FeedhookError):
    """A required setting is missing or a stored value cannot be used."""


class SettingsValidationError(FeedhookError):
    """A submitted settings change was rejected."""


class DeliveryError(FeedhookError):
    """The webhook did not accept the notification."""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class LedgerError(FeedhookError):
    """The dedup ledger could not be read or written."""


class DuplicateNotificationError(LedgerError):
    """The ledger already holds a record for the same owner, feed and link."""
