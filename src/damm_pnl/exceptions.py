"""Exception taxonomy for the DAMM PnL tracker."""

from __future__ import annotations


class DammError(Exception):
    """Base exception for tracker errors."""


class InvalidInputError(DammError):
    """Malformed or out-of-range input (e.g. a non-numeric or negative amount)."""


class PositionNotFoundError(DammError):
    """The operation needs an active position for a token and there is none."""

    def __init__(self, token: str) -> None:
        self.token = token.lower()
        super().__init__(f"No active position for {token.upper()} found.")


class StorageError(DammError):
    """The position store could not be read or written."""


class PriceOracleError(DammError):
    """Upstream price lookup failed. Never escapes the oracle."""
