"""Custom exception hierarchy for the loan tracker."""

from typing import List, Sequence, Union


class LoanTrackerError(Exception):
    """Base exception for all loan tracker errors."""


class ValidationError(LoanTrackerError):
    """Raised when input is malformed or out of range.

    Carries one or more human-readable messages; ``message`` is the first.
    """

    def __init__(self, messages: Union[str, Sequence[str]]):
        if isinstance(messages, str):
            messages = [messages]
        self.messages: List[str] = list(messages)
        super().__init__("; ".join(self.messages))

    @property
    def message(self) -> str:
        return self.messages[0] if self.messages else ""


class NotFoundError(LoanTrackerError):
    """Raised when a referenced loan does not exist."""


class InternalError(LoanTrackerError):
    """Raised when persistence or rendering fails."""
