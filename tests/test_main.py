from types import SimpleNamespace

import pytest

from emirafrik.main import _assert_runtime_configuration


def _settings(**overrides):
    values = dict(
        app_env="prod",
        MOMO_PROVIDER_MODE="simulated",
        AUTH_MODE="jwt",
        AUTH_JWT_SECRET="jwt-secret",
        momo_webhook_secret="hook-secret",
        MTN_MOMO_SUBSCRIPTION_KEY=None,
        MTN_MOMO_API_USER=None,
        MTN_MOMO_API_KEY=None,
        ORANGE_MONEY_ACCESS_TOKEN=None,
        ORANGE_MONEY_MERCHANT_KEY=None,
        AIRTEL_MONEY_ACCESS_TOKEN=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_startup_accepts_complete_configuration():
    _assert_runtime_configuration(_settings())


def test_startup_rejects_unknown_provider_mode():
    with pytest.raises(RuntimeError):
        _assert_runtime_configuration(_settings(MOMO_PROVIDER_MODE="sandbox"))


def test_startup_requires_live_credentials_outside_dev():
    with pytest.raises(RuntimeError, match="MTN_MOMO_SUBSCRIPTION_KEY"):
        _assert_runtime_configuration(_settings(MOMO_PROVIDER_MODE="live"))

    _assert_runtime_configuration(_settings(app_env="dev", MOMO_PROVIDER_MODE="live"))


def test_startup_requires_jwt_secret_outside_dev():
    with pytest.raises(RuntimeError):
        _assert_runtime_configuration(_settings(AUTH_JWT_SECRET=None))

    _assert_runtime_configuration(_settings(app_env="dev", AUTH_JWT_SECRET=None))


def test_startup_warns_without_webhook_secret(caplog):
    _assert_runtime_configuration(_settings(momo_webhook_secret=None))

    assert any("MOMO_WEBHOOK_SECRET" in record.getMessage() for record in caplog.records)


def test_startup_skips_scheduler_without_expiry_window():
    from emirafrik.main import _start_scheduler

    settings = SimpleNamespace(SCHEDULER_ENABLED=True, PENDING_PAYMENT_EXPIRY_HOURS=None, app_env="test")

    assert _start_scheduler(settings) is False
