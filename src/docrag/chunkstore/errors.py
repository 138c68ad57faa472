"""Common exceptions for chunk store integrations."""
from __future__ import annotations


class StoreUnavailableError(RuntimeError):
    """Raised when the chunk table cannot be initialised or queried."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause
