import time

import pytest
from jose import jwt

from emirafrik.config import Settings
from emirafrik.identity import (
    InvalidIdentityToken,
    JWTIdentityVerifier,
    StaticTokenIdentityVerifier,
    build_identity_verifier,
)

SECRET = "super-secret-jwt-key"


def _token(secret=SECRET, **claims):
    payload = {"sub": "patient-42", "aud": "authenticated", "exp": int(time.time()) + 600}
    payload.update(claims)
    return jwt.encode({k: v for k, v in payload.items() if v is not None}, secret, algorithm="HS256")


def test_jwt_verifier_returns_subject():
    verifier = JWTIdentityVerifier(SECRET, audience="authenticated")

    assert verifier.verify(_token()) == "patient-42"


@pytest.mark.parametrize(
    "token",
    [
        _token(secret="other-secret"),
        _token(exp=int(time.time()) - 10),
        _token(aud="someone-else"),
        _token(sub=None),
        "not-a-jwt",
    ],
)
def test_jwt_verifier_rejects_bad_tokens(token):
    verifier = JWTIdentityVerifier(SECRET, audience="authenticated")

    with pytest.raises(InvalidIdentityToken):
        verifier.verify(token)


def test_jwt_verifier_without_audience_ignores_aud_claim():
    verifier = JWTIdentityVerifier(SECRET, audience=None)

    assert verifier.verify(_token(aud="anything")) == "patient-42"


def test_static_verifier():
    verifier = StaticTokenIdentityVerifier({"demo": "u1"})

    assert verifier.verify("demo") == "u1"
    with pytest.raises(InvalidIdentityToken):
        verifier.verify("other")


def test_build_identity_verifier_modes():
    assert isinstance(
        build_identity_verifier(Settings(AUTH_MODE="jwt", AUTH_JWT_SECRET=SECRET)), JWTIdentityVerifier
    )
    assert isinstance(
        build_identity_verifier(Settings(AUTH_MODE="static", AUTH_STATIC_TOKENS={"t": "u"})),
        StaticTokenIdentityVerifier,
    )


def test_build_identity_verifier_requires_secret_for_jwt():
    with pytest.raises(RuntimeError):
        build_identity_verifier(Settings(AUTH_MODE="jwt", AUTH_JWT_SECRET="  "))

    settings = Settings()
    settings.AUTH_MODE = "oauth-device"
    with pytest.raises(RuntimeError):
        build_identity_verifier(settings)


@pytest.mark.anyio
async def test_jwt_bearer_resolves_caller_end_to_end(client, make_payment, monkeypatch):
    from emirafrik.config import get_settings

    settings = get_settings()
    monkeypatch.setattr(settings, "AUTH_MODE", "jwt")
    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", SECRET)
    payment = make_payment(user_id="patient-42")

    resp = await client.get(
        "/mobile-money/status",
        params={"payment_ref": payment.id, "user_id": "patient-42"},
        headers={"Authorization": f"Bearer {_token()}"},
    )

    assert resp.status_code == 200
    assert resp.json()["payment_ref"] == payment.id
