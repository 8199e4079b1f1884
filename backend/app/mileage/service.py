"""Wiring for the mileage engine: one facade used by the API, the CLI and health checks."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from functools import lru_cache

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from ..db.core import engine as default_engine
from ..settings import Settings, settings
from .batch import BatchResolver, LanePair
from .cache import DistanceCache
from .contracts import DistanceResult, ProviderStatus, ResolutionOptions
from .orchestrator import ResolutionOrchestrator
from .providers.base import MileageProvider
from .providers.registry import FALLBACK_ORDER, build_providers
from .status import StatusReporter


class MileageService:
    def __init__(
        self,
        orchestrator: ResolutionOrchestrator,
        batch: BatchResolver,
        reporter: StatusReporter,
    ) -> None:
        self.orchestrator = orchestrator
        self.batch = batch
        self.reporter = reporter

    @property
    def cache(self) -> DistanceCache:
        return self.orchestrator.cache

    async def calculate(
        self, origin: str, destination: str, options: ResolutionOptions | None = None
    ) -> DistanceResult:
        return await self.orchestrator.resolve(origin, destination, options)

    async def calculate_batch(self, pairs: Sequence[LanePair]) -> list[DistanceResult]:
        return await self.batch.resolve_batch(pairs)

    def status(self) -> ProviderStatus:
        return self.reporter.status()

    async def purge_expired(self) -> int:
        return await self.cache.purge_expired()


def build_mileage_service(
    config: Settings = settings,
    *,
    engine: AsyncEngine | None = None,
    client: httpx.AsyncClient | None = None,
    providers: dict[str, MileageProvider] | None = None,
    cache: DistanceCache | None = None,
) -> MileageService:
    if cache is None:
        cache = DistanceCache(
            engine if engine is not None else default_engine,
            ttl=timedelta(days=config.MILEAGE_CACHE_TTL_DAYS),
        )
    orchestrator = ResolutionOrchestrator(
        providers if providers is not None else build_providers(config, client=client),
        cache,
        active=config.MILEAGE_PROVIDER,
        fallback_order=FALLBACK_ORDER,
        breaker_enabled=config.MILEAGE_BREAKER_ENABLED,
        breaker_failure_threshold=config.MILEAGE_BREAKER_FAILURE_THRESHOLD,
        breaker_cooldown_seconds=config.MILEAGE_BREAKER_COOLDOWN_SECONDS,
    )
    return MileageService(
        orchestrator,
        BatchResolver(orchestrator, concurrency=config.MILEAGE_BATCH_CONCURRENCY),
        StatusReporter(config, fallback_order=FALLBACK_ORDER),
    )


@lru_cache(maxsize=1)
def get_mileage_service() -> MileageService:
    return build_mileage_service()


__all__ = ["MileageService", "build_mileage_service", "get_mileage_service"]
