"""Domain exceptions shared across the journal services."""

from __future__ import annotations


class TradeJournalError(Exception):
    """Base class for every error raised by the journal package."""


class JournalError(TradeJournalError):
    """A host-level mutation was rejected (duplicate id, unknown id, ...)."""

    def __init__(self, message: str, *, not_found: bool = False) -> None:
        super().__init__(message)
        self.not_found = not_found


class ImportMalformedError(TradeJournalError):
    """A whole import file could not be parsed."""


class RemoteStoreError(TradeJournalError):
    """Network, auth or server failure talking to the remote backup row."""


class CalculatorError(TradeJournalError):
    """Invalid input to one of the trading calculators."""
