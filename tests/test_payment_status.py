import pytest

from emirafrik.config import get_settings
from emirafrik.models import PaymentStatus


def _params(payment, user_id="u1"):
    return {"payment_ref": payment.id, "user_id": user_id}


@pytest.mark.anyio
async def test_owner_reads_pending_status(client, make_payment, u1_headers):
    payment = make_payment()

    resp = await client.get("/mobile-money/status", params=_params(payment), headers=u1_headers)

    assert resp.status_code == 200
    data = resp.json()
    assert data["payment_ref"] == payment.id
    assert data["status"] == "pending"
    assert data["amount"] == "50.00"
    assert data["currency"] == "USD"
    assert data["provider"] == "mtn"
    assert data["paid_at"] is None
    assert data["transaction_id"] is None


@pytest.mark.anyio
async def test_status_reflects_webhook_outcome(client, make_payment, u1_headers):
    payment = make_payment()
    await client.post(
        "/mobile-money/webhook",
        json={"payment_ref": payment.id, "status": "paid", "transaction_id": "T1"},
    )

    resp = await client.get("/mobile-money/status", params=_params(payment), headers=u1_headers)

    data = resp.json()
    assert data["status"] == "paid"
    assert data["transaction_id"] == "T1"
    assert data["paid_at"] is not None


@pytest.mark.anyio
async def test_other_users_payment_looks_absent(client, make_payment, monkeypatch):
    # without the token check the ownership filter alone must hide the row
    monkeypatch.setattr(get_settings(), "STATUS_REQUIRES_AUTH", False)
    payment = make_payment(user_id="u1")

    resp = await client.get("/mobile-money/status", params=_params(payment, user_id="u2"))

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "PAYMENT_NOT_FOUND"


@pytest.mark.anyio
async def test_unknown_reference(client, u1_headers):
    resp = await client.get(
        "/mobile-money/status",
        params={"payment_ref": "EMIRAFRIK_MTN_1_nothing", "user_id": "u1"},
        headers=u1_headers,
    )

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "PAYMENT_NOT_FOUND"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "params, field",
    [
        ({"user_id": "u1"}, "payment_ref"),
        ({"payment_ref": "ref"}, "user_id"),
        ({"payment_ref": "", "user_id": "u1"}, "payment_ref"),
    ],
)
async def test_missing_query_parameters(client, u1_headers, params, field):
    resp = await client.get("/mobile-money/status", params=params, headers=u1_headers)

    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "INVALID_INPUT"
    assert error["details"]["field"] == field


@pytest.mark.anyio
async def test_status_requires_token_by_default(client, make_payment):
    payment = make_payment()

    resp = await client.get("/mobile-money/status", params=_params(payment))

    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.anyio
async def test_status_for_another_user_is_forbidden(client, make_payment, u2_headers):
    payment = make_payment(user_id="u1")

    resp = await client.get("/mobile-money/status", params=_params(payment), headers=u2_headers)

    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"


@pytest.mark.anyio
async def test_status_without_auth_when_disabled(client, make_payment, monkeypatch):
    monkeypatch.setattr(get_settings(), "STATUS_REQUIRES_AUTH", False)
    payment = make_payment(status=PaymentStatus.FAILED)

    resp = await client.get("/mobile-money/status", params=_params(payment))

    assert resp.status_code == 200
    assert resp.json()["status"] == "failed"


@pytest.fixture
def jwt_mode_without_secret(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "AUTH_MODE", "jwt")
    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", None)


@pytest.mark.anyio
async def test_open_status_poll_needs_no_verifier(client, make_payment, monkeypatch, jwt_mode_without_secret):
    monkeypatch.setattr(get_settings(), "STATUS_REQUIRES_AUTH", False)
    payment = make_payment()

    resp = await client.get("/mobile-money/status", params=_params(payment))

    assert resp.status_code == 200
    assert resp.json()["status"] == "pending"


@pytest.mark.anyio
async def test_missing_token_is_401_before_verifier_is_built(client, make_payment, jwt_mode_without_secret):
    payment = make_payment()

    status_resp = await client.get("/mobile-money/status", params=_params(payment))
    pay_resp = await client.post(
        "/mobile-money/pay",
        json={"userId": "u1", "amount": 10, "provider": "mtn", "phone": "+23761112222"},
    )

    assert status_resp.status_code == 401
    assert status_resp.json()["error"]["code"] == "UNAUTHORIZED"
    assert pay_resp.status_code == 401
    assert pay_resp.json()["error"]["code"] == "UNAUTHORIZED"
