"""Cache-aware resolution across the active provider and its fallbacks."""

from __future__ import annotations

import time
from collections.abc import Mapping

from ..circuit_breaker import CircuitBreaker, CircuitOpenError
from ..logging_config import get_logger
from ..metrics import (
    mileage_cache_lookups_total,
    mileage_cache_write_failures_total,
    mileage_fallbacks_total,
    mileage_provider_calls_total,
    mileage_provider_latency_seconds,
)
from .cache import DistanceCache
from .contracts import DistanceResult, ResolutionOptions
from .errors import (
    AllProvidersFailedError,
    ConfigurationError,
    NotFoundError,
    ProviderError,
    ProviderFailure,
    ProviderTimeoutError,
)
from .keys import derive_key
from .providers.base import MileageProvider
from .providers.registry import FALLBACK_ORDER, resolution_chain

logger = get_logger(__name__)


def _outcome_label(exc: BaseException | None) -> str:
    if exc is None:
        return "ok"
    if isinstance(exc, ConfigurationError):
        return "not_configured"
    if isinstance(exc, NotFoundError):
        return "not_found"
    if isinstance(exc, ProviderTimeoutError):
        return "timeout"
    if isinstance(exc, CircuitOpenError):
        return "circuit_open"
    if isinstance(exc, ProviderError):
        return "upstream_error"
    return "unexpected_error"


class ResolutionOrchestrator:
    """
    Resolve a lane against the active provider, walking the fallback chain on failure.

    Every provider in the chain gets its own cache lookup and its own write-through, so a
    fallback's answer is stored under the fallback's name and never served for another
    provider. Only `AllProvidersFailedError` escapes `resolve`.
    """

    def __init__(
        self,
        providers: Mapping[str, MileageProvider],
        cache: DistanceCache,
        *,
        active: str,
        fallback_order: tuple[str, ...] = FALLBACK_ORDER,
        breaker_enabled: bool = True,
        breaker_failure_threshold: int = 5,
        breaker_cooldown_seconds: float = 60.0,
    ) -> None:
        missing = {active, *fallback_order} - set(providers)
        if missing:
            raise ValueError(f"Unknown mileage providers: {', '.join(sorted(missing))}")
        self.providers = dict(providers)
        self.cache = cache
        self.active = active
        self.fallback_order = fallback_order
        self.breakers = {
            name: CircuitBreaker(
                f"mileage:{name}",
                failure_threshold=breaker_failure_threshold,
                cooldown_seconds=breaker_cooldown_seconds,
                enabled=breaker_enabled,
                # Missing credentials and unroutable lanes say nothing about upstream health
                ignored=(ConfigurationError, NotFoundError),
            )
            for name in self.providers
        }

    @property
    def chain(self) -> list[str]:
        return resolution_chain(self.active, self.fallback_order)

    async def resolve(
        self,
        origin: str,
        destination: str,
        options: ResolutionOptions | None = None,
    ) -> DistanceResult:
        options = options or ResolutionOptions()
        origin_key = derive_key(origin)
        dest_key = derive_key(destination)
        failures: list[ProviderFailure] = []

        for position, name in enumerate(self.chain):
            provider = self.providers[name]
            if position:
                mileage_fallbacks_total.labels(provider=name).inc()
                logger.warning(
                    "mileage_fallback_attempt",
                    provider=name,
                    after=failures[-1].provider,
                    origin=origin,
                    destination=destination,
                )

            cached = await self._lookup(origin_key, dest_key, provider)
            if cached is not None:
                return cached

            try:
                result = await self._call(provider, origin, destination, options)
            except ConfigurationError as exc:
                failures.append(ProviderFailure.from_exception(name, exc))
                logger.warning("mileage_provider_not_configured", provider=name, error=exc.message)
            except (ProviderError, CircuitOpenError) as exc:
                failures.append(ProviderFailure.from_exception(name, exc))
                logger.error(
                    "mileage_provider_failed",
                    provider=name,
                    error_type=type(exc).__name__,
                    error=str(exc),
                    origin=origin,
                    destination=destination,
                )
            except Exception as exc:  # noqa: BLE001 - a broken provider must not stop the chain
                failures.append(ProviderFailure.from_exception(name, exc))
                logger.exception("mileage_provider_crashed", provider=name)
            else:
                await self._write_through(origin, destination, provider, result)
                return result

        logger.error(
            "mileage_all_providers_failed",
            origin=origin,
            destination=destination,
            failures=[failure.as_dict() for failure in failures],
        )
        raise AllProvidersFailedError(failures)

    async def _lookup(
        self, origin_key: str, dest_key: str, provider: MileageProvider
    ) -> DistanceResult | None:
        try:
            entry = await self.cache.get(origin_key, dest_key, provider.name)
        except Exception as exc:  # noqa: BLE001 - an unreadable cache is a miss
            mileage_cache_lookups_total.labels(provider=provider.name, result="error").inc()
            logger.warning("mileage_cache_read_failed", provider=provider.name, error=str(exc))
            return None
        if entry is None:
            mileage_cache_lookups_total.labels(provider=provider.name, result="miss").inc()
            return None
        mileage_cache_lookups_total.labels(provider=provider.name, result="hit").inc()
        logger.info(
            "mileage_cache_hit",
            provider=provider.name,
            origin=entry.origin_text,
            destination=entry.destination_text,
        )
        return entry.to_result(provider.source)

    async def _call(
        self,
        provider: MileageProvider,
        origin: str,
        destination: str,
        options: ResolutionOptions,
    ) -> DistanceResult:
        breaker = self.breakers[provider.name]
        started = time.perf_counter()
        error: BaseException | None = None
        try:
            return await breaker.call(provider.calculate, origin, destination, options)
        except BaseException as exc:
            error = exc
            raise
        finally:
            if not isinstance(error, CircuitOpenError | ConfigurationError):
                mileage_provider_latency_seconds.labels(provider=provider.name).observe(
                    time.perf_counter() - started
                )
            mileage_provider_calls_total.labels(
                provider=provider.name, outcome=_outcome_label(error)
            ).inc()

    async def _write_through(
        self, origin: str, destination: str, provider: MileageProvider, result: DistanceResult
    ) -> None:
        outcome = await self.cache.put(origin, destination, provider.name, result)
        if not outcome.ok:
            mileage_cache_write_failures_total.labels(provider=provider.name).inc()
            logger.warning(
                "mileage_cache_write_failed",
                provider=provider.name,
                origin=origin,
                destination=destination,
                error=outcome.error,
            )


__all__ = ["ResolutionOrchestrator"]
