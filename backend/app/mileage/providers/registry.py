from __future__ import annotations

import httpx

from ...settings import ProviderName, Settings, settings
from .base import MileageProvider
from .google import GoogleDirectionsProvider
from .milemaker import MileMakerProvider
from .pcmiler import PCMilerProvider

# Fixed fallback order; independent of which provider is active.
FALLBACK_ORDER: tuple[ProviderName, ...] = ("pcmiler", "milemaker", "google")


def build_providers(
    config: Settings = settings, *, client: httpx.AsyncClient | None = None
) -> dict[str, MileageProvider]:
    """Instantiate every known provider from configuration, keyed by provider name."""
    return {
        "google": GoogleDirectionsProvider(
            config.GOOGLE_MAPS_API_KEY,
            url=config.GOOGLE_DIRECTIONS_URL,
            timeout=config.MILEAGE_ESTIMATE_TIMEOUT_SECONDS,
            client=client,
        ),
        "milemaker": MileMakerProvider(
            config.MILEMAKER_CLIENT_ID,
            config.MILEMAKER_CLIENT_SECRET,
            base_url=config.MILEMAKER_API_BASE,
            auth_timeout=config.MILEAGE_AUTH_TIMEOUT_SECONDS,
            route_timeout=config.MILEAGE_ROUTE_TIMEOUT_SECONDS,
            client=client,
        ),
        "pcmiler": PCMilerProvider(
            config.PCMILER_API_KEY,
            base_url=config.PCMILER_API_BASE,
            timeout=config.MILEAGE_ROUTE_TIMEOUT_SECONDS,
            client=client,
        ),
    }


def fallbacks_for(active: str, order: tuple[str, ...] = FALLBACK_ORDER) -> list[str]:
    return [name for name in order if name != active]


def resolution_chain(active: str, order: tuple[str, ...] = FALLBACK_ORDER) -> list[str]:
    """Active provider first, then the fallback order with the active one removed."""
    return [active, *fallbacks_for(active, order)]


__all__ = ["FALLBACK_ORDER", "build_providers", "fallbacks_for", "resolution_chain"]
