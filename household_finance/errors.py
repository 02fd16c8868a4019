"""Exception hierarchy for the household finance tracker."""

from __future__ import annotations


class FinanceError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(FinanceError, ValueError):
    """A draft or update failed validation before reaching the store."""


class InvalidMonthKeyError(ValidationError):
    """A month key did not match the ``YYYY-MM`` format."""

    def __init__(self, value: object):
        super().__init__(f"Invalid month key {value!r}; expected YYYY-MM")
        self.value = value


class PersistenceError(FinanceError):
    """The persistence backend failed to load or store data."""
