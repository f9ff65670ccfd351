"""Shared exceptions for service layer operations."""


class OperationFailedError(Exception):
    """
    Raised when the backing store fails while performing an operation.

    Wraps network errors and constraint violations with a generic message that
    still carries the underlying cause. No retry is attempted.
    """

    def __init__(self, operation: str, cause: Exception) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Failed to {operation}: {cause}")
