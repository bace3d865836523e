"""Exceptions raised by simple-tx.

Expected failures travel as ``Err`` values; these exceptions are faults.
"""

from typing import Any


class TxError(Exception):
    """Base class for all simple-tx errors."""


class TxFailedError(TxError):
    """Raised by ``run_or_raise`` when a transaction fails with a non-exception payload."""

    def __init__(self, error: Any) -> None:
        super().__init__(f"Transaction failed: {error!r}")
        self.error = error


class DuplicateStepError(TxError):
    """Raised when a saga step name is already taken."""

    def __init__(self, name: Any) -> None:
        super().__init__(f"Step {name!r} is already part of the saga")
        self.name = name


class DesugarError(TxError):
    """Raised when a block cannot be rewritten into composed transactions."""


class UnmatchedClauseError(TxError):
    """Raised when no else clause of a block matches the mismatched value."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"No else clause matched: {value!r}")
        self.value = value
