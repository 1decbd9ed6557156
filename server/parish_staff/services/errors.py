from __future__ import annotations

from enum import Enum


class StaffErrorCode(str, Enum):
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    WEAK_CREDENTIAL = "WEAK_CREDENTIAL"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ALREADY_PROCESSED = "ALREADY_PROCESSED"
    INTERNAL = "INTERNAL"


class StaffLifecycleError(Exception):
    """A lifecycle operation was refused or failed; ``message`` is safe to show to users."""

    def __init__(self, code: StaffErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"StaffLifecycleError({self.code.value}, {self.message!r})"
