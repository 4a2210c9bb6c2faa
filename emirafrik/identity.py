"""Identity verification backends.

The payment core only needs ``verify(token) -> user_id``; which backend
answers is a deployment choice (``AUTH_MODE``).
"""
from __future__ import annotations

import logging
from typing import Mapping, Protocol

from jose import JWTError, jwt

from emirafrik.config import Settings, get_settings

logger = logging.getLogger(__name__)


class InvalidIdentityToken(Exception):
    """The bearer token could not be resolved to a user."""


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> str:
        """Return the user id the token belongs to or raise InvalidIdentityToken."""


class JWTIdentityVerifier:
    """Verifies access tokens issued by the hosted auth service."""

    def __init__(
        self,
        secret: str,
        *,
        algorithms: list[str] | None = None,
        audience: str | None = None,
    ) -> None:
        self._secret = secret
        self._algorithms = algorithms or ["HS256"]
        self._audience = audience

    def verify(self, token: str) -> str:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=self._algorithms,
                audience=self._audience,
                options={"verify_aud": self._audience is not None},
            )
        except JWTError as exc:
            logger.info("Rejected identity token", extra={"reason": str(exc)})
            raise InvalidIdentityToken(str(exc)) from exc

        subject = claims.get("sub")
        if not subject:
            raise InvalidIdentityToken("Token has no subject claim.")
        return str(subject)


class StaticTokenIdentityVerifier:
    """Demo/test backend backed by a fixed token table."""

    def __init__(self, tokens: Mapping[str, str]) -> None:
        self._tokens = dict(tokens)

    def verify(self, token: str) -> str:
        user_id = self._tokens.get(token)
        if user_id is None:
            raise InvalidIdentityToken("Unknown token.")
        return user_id


def build_identity_verifier(settings: Settings | None = None) -> IdentityVerifier:
    """Build the verifier selected by ``AUTH_MODE``."""

    settings = settings or get_settings()
    if settings.AUTH_MODE == "jwt":
        if not settings.AUTH_JWT_SECRET:
            raise RuntimeError("AUTH_MODE=jwt requires AUTH_JWT_SECRET.")
        return JWTIdentityVerifier(
            settings.AUTH_JWT_SECRET,
            algorithms=settings.AUTH_JWT_ALGORITHMS,
            audience=settings.AUTH_JWT_AUDIENCE,
        )
    if settings.AUTH_MODE == "static":
        return StaticTokenIdentityVerifier(settings.AUTH_STATIC_TOKENS)
    raise RuntimeError(f"Unknown AUTH_MODE {settings.AUTH_MODE!r}; expected 'jwt' or 'static'.")


__all__ = [
    "IdentityVerifier",
    "InvalidIdentityToken",
    "JWTIdentityVerifier",
    "StaticTokenIdentityVerifier",
    "build_identity_verifier",
]
