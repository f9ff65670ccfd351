"""
Gateway error types and HTTP error parsing.

Every failed gateway call surfaces as a GatewayError subclass carrying a
message fit to show the user as-is.
"""
from typing import Any

import httpx

VALUE_ERROR_PREFIX = "Value error, "


class GatewayError(Exception):
    """Base class for failed gateway calls."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class UnauthorizedError(GatewayError):
    """The caller has no valid identity (401)."""


class ValidationError(GatewayError):
    """The server rejected the payload (400/422)."""


class NotFoundError(GatewayError):
    """The record does not exist or belongs to someone else (404)."""


class OperationFailedError(GatewayError):
    """The store failed or the server could not be reached."""


def _safe_get_detail(response: httpx.Response) -> Any:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("detail")
    return None


def _extract_validation_message(detail: Any) -> str:
    """Pull the human-readable message(s) out of a 400/422 detail."""
    if isinstance(detail, str) and detail:
        return detail
    if isinstance(detail, list):
        # FastAPI validation errors return a list of error objects
        messages = []
        for err in detail:
            if isinstance(err, dict) and err.get("msg"):
                msg = str(err["msg"])
                messages.append(msg.removeprefix(VALUE_ERROR_PREFIX))
        if messages:
            return "; ".join(messages)
    return "Validation error"


def error_from_response(response: httpx.Response, operation: str) -> GatewayError:
    """
    Translate an unsuccessful response into a GatewayError.

    Args:
        response: The non-2xx response returned by the API.
        operation: What was being attempted, e.g. "create bookmark".
    """
    status = response.status_code
    detail = _safe_get_detail(response)

    if status == 401:
        return UnauthorizedError(detail if isinstance(detail, str) else "Unauthorized", status)
    if status == 404:
        return NotFoundError(detail if isinstance(detail, str) else "Not found", status)
    if status in (400, 422):
        return ValidationError(_extract_validation_message(detail), status)
    if isinstance(detail, str) and detail:
        return OperationFailedError(detail, status)
    return OperationFailedError(f"Failed to {operation}: API error {status}", status)
