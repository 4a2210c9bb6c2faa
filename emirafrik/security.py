"""Security dependencies resolving the calling user from a bearer token."""
from __future__ import annotations

from fastapi import Depends, Header, status

from emirafrik.config import get_settings
from emirafrik.identity import IdentityVerifier, InvalidIdentityToken, build_identity_verifier
from emirafrik.utils.errors import UNAUTHORIZED, raise_api_error

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def _extract_bearer(authorization: str | None = Header(default=None)) -> str | None:
    """Return the token from ``Authorization: Bearer ...`` if present."""

    if authorization and authorization.startswith("Bearer "):
        token = authorization.split(" ", 1)[1].strip()
        return token or None
    return None


def get_identity_verifier() -> IdentityVerifier:
    """Verifier for the configured ``AUTH_MODE``; built only when a token needs checking."""

    return build_identity_verifier(get_settings())


def _resolve(token: str | None) -> str:
    if not token:
        raise_api_error(
            status.HTTP_401_UNAUTHORIZED,
            UNAUTHORIZED,
            "Bearer identity token required.",
            headers=_BEARER_CHALLENGE,
        )
    try:
        return get_identity_verifier().verify(token)
    except InvalidIdentityToken:
        raise_api_error(
            status.HTTP_401_UNAUTHORIZED,
            UNAUTHORIZED,
            "Invalid or expired identity token.",
            headers=_BEARER_CHALLENGE,
        )


def require_user_id(token: str | None = Depends(_extract_bearer)) -> str:
    """Resolve the caller's user id or fail with 401."""

    return _resolve(token)


def status_caller_id(token: str | None = Depends(_extract_bearer)) -> str | None:
    """Caller for status polls; ``None`` when ``STATUS_REQUIRES_AUTH`` is off."""

    if not get_settings().STATUS_REQUIRES_AUTH:
        return None
    return _resolve(token)


__all__ = ["get_identity_verifier", "require_user_id", "status_caller_id"]
