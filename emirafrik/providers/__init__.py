"""Mobile-money provider adapters and their dispatch."""
from __future__ import annotations

from emirafrik.config import Settings, get_settings
from emirafrik.models.payment import MomoProvider

from .airtel import AirtelMoneyAdapter
from .base import CheckoutResult, HttpProviderAdapter, ProviderAdapter, ProviderError
from .mtn import MtnMomoAdapter
from .orange import OrangeMoneyAdapter
from .simulated import SIMULATED_SUCCESS_RATES, SimulatedProviderAdapter

PROVIDER_MODES = {"simulated", "live"}

_LIVE_ADAPTERS: dict[MomoProvider, type[HttpProviderAdapter]] = {
    MomoProvider.MTN: MtnMomoAdapter,
    MomoProvider.ORANGE: OrangeMoneyAdapter,
    MomoProvider.AIRTEL: AirtelMoneyAdapter,
}

_SIMULATOR_OUTCOMES = {"random": None, "success": True, "failure": False}


def get_provider_adapter(
    provider: MomoProvider | str, settings: Settings | None = None
) -> ProviderAdapter:
    """Return a fresh adapter for ``provider`` according to the configured mode."""

    settings = settings or get_settings()
    provider = MomoProvider(provider)
    mode = settings.MOMO_PROVIDER_MODE
    if mode == "live":
        return _LIVE_ADAPTERS[provider](settings)
    if mode == "simulated":
        return SimulatedProviderAdapter(
            provider.value,
            force_outcome=_SIMULATOR_OUTCOMES[settings.MOMO_SIMULATOR_OUTCOME],
        )
    raise RuntimeError(f"Unknown MOMO_PROVIDER_MODE {mode!r}; expected one of {sorted(PROVIDER_MODES)}.")


def missing_live_credentials(settings: Settings) -> list[str]:
    """Names of provider settings that live mode needs but are unset."""

    required = (
        "MTN_MOMO_SUBSCRIPTION_KEY",
        "MTN_MOMO_API_USER",
        "MTN_MOMO_API_KEY",
        "ORANGE_MONEY_ACCESS_TOKEN",
        "ORANGE_MONEY_MERCHANT_KEY",
        "AIRTEL_MONEY_ACCESS_TOKEN",
    )
    return [name for name in required if not getattr(settings, name, None)]


__all__ = [
    "AirtelMoneyAdapter",
    "CheckoutResult",
    "MtnMomoAdapter",
    "OrangeMoneyAdapter",
    "PROVIDER_MODES",
    "ProviderAdapter",
    "ProviderError",
    "SIMULATED_SUCCESS_RATES",
    "SimulatedProviderAdapter",
    "get_provider_adapter",
    "missing_live_credentials",
]
