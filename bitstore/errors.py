"""Failure types raised by the bitstream store."""

from __future__ import annotations


class IOFailure(Exception):
    """Uniform I/O failure for every store operation.

    Carries the operation name, the storage key that was attempted and the
    backend exception that caused it, so callers never depend on
    backend-specific exception types.
    """

    def __init__(
        self,
        operation: str,
        key: str | None,
        cause: BaseException | None = None,
        message: str | None = None,
    ):
        self.operation = operation
        self.key = key
        self.cause = cause
        if message is None:
            message = f"Failed to {operation} object: {key}"
            if cause is not None:
                message = f"{message} ({cause})"
        super().__init__(message)


class StoreNotReadyError(IOFailure):
    """Raised when an operation is attempted on a store that is not ready."""

    def __init__(self, operation: str, key: str | None, state: str):
        self.state = state
        super().__init__(
            operation,
            key,
            message=f"Bitstream store is not ready ({state}); cannot {operation}: {key}",
        )
