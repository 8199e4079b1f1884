from __future__ import annotations

from ..settings import Settings, settings
from .contracts import ProviderStatus
from .providers.registry import FALLBACK_ORDER, fallbacks_for


class StatusReporter:
    """Which provider is active, whether it has credentials, and what it falls back to."""

    def __init__(
        self, config: Settings = settings, *, fallback_order: tuple[str, ...] = FALLBACK_ORDER
    ) -> None:
        self.config = config
        self.fallback_order = fallback_order

    def status(self) -> ProviderStatus:
        active = self.config.MILEAGE_PROVIDER
        return ProviderStatus(
            active_provider=active,
            configured=self.config.provider_configured(active),
            fallback_order=fallbacks_for(active, self.fallback_order),
        )


__all__ = ["StatusReporter"]
