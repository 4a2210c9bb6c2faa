"""Utility helpers for standardized error responses."""
from typing import Any, NoReturn

from fastapi import HTTPException, status

# Stable error codes surfaced to API clients.
INVALID_INPUT = "INVALID_INPUT"
UNAUTHORIZED = "UNAUTHORIZED"
FORBIDDEN = "FORBIDDEN"
PROVIDER_ERROR = "PROVIDER_ERROR"
PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
INVALID_PAYLOAD = "INVALID_PAYLOAD"
INTERNAL_ERROR = "INTERNAL_ERROR"


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return a standardized error payload."""

    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return payload


def raise_api_error(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    *,
    headers: dict[str, str] | None = None,
) -> NoReturn:
    """Raise an ``HTTPException`` carrying the standard error envelope."""

    raise HTTPException(
        status_code=status_code,
        detail=error_response(code, message, details),
        headers=headers,
    )


def invalid_input(field: str, message: str) -> NoReturn:
    raise_api_error(status.HTTP_400_BAD_REQUEST, INVALID_INPUT, message, {"field": field})


def payment_not_found() -> NoReturn:
    raise_api_error(status.HTTP_404_NOT_FOUND, PAYMENT_NOT_FOUND, "Payment not found.")


__all__ = [
    "INVALID_INPUT",
    "UNAUTHORIZED",
    "FORBIDDEN",
    "PROVIDER_ERROR",
    "PAYMENT_NOT_FOUND",
    "INVALID_PAYLOAD",
    "INTERNAL_ERROR",
    "error_response",
    "raise_api_error",
    "invalid_input",
    "payment_not_found",
]
