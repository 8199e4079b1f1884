"""Bounded-concurrency resolution of many lanes at once."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..logging_config import get_logger
from ..metrics import mileage_batch_sentinels_total
from .contracts import DistanceResult, ResolutionOptions
from .errors import AllProvidersFailedError
from .orchestrator import ResolutionOrchestrator

logger = get_logger(__name__)

DEFAULT_CONCURRENCY = 5


@dataclass(frozen=True, slots=True)
class LanePair:
    origin: str
    destination: str
    options: ResolutionOptions = field(default_factory=ResolutionOptions)


class BatchResolver:
    """
    Resolve lanes in fixed windows of `concurrency` and return results in input order.

    A lane that cannot be resolved becomes `DistanceResult.sentinel()` at its own index; the
    batch as a whole never raises.
    """

    def __init__(
        self, orchestrator: ResolutionOrchestrator, *, concurrency: int = DEFAULT_CONCURRENCY
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.orchestrator = orchestrator
        self.concurrency = concurrency

    async def resolve_batch(self, pairs: Sequence[LanePair]) -> list[DistanceResult]:
        results: list[DistanceResult] = []
        for start in range(0, len(pairs), self.concurrency):
            window = pairs[start : start + self.concurrency]
            # gather() yields results in argument order, not completion order
            results.extend(
                await asyncio.gather(
                    *(self._resolve_one(start + offset, pair) for offset, pair in enumerate(window))
                )
            )
        return results

    async def _resolve_one(self, index: int, pair: LanePair) -> DistanceResult:
        if not pair.origin.strip() or not pair.destination.strip():
            logger.warning(
                "mileage_batch_pair_invalid",
                index=index,
                origin=pair.origin,
                destination=pair.destination,
            )
            mileage_batch_sentinels_total.inc()
            return DistanceResult.sentinel()
        try:
            return await self.orchestrator.resolve(pair.origin, pair.destination, pair.options)
        except AllProvidersFailedError as exc:
            logger.warning(
                "mileage_batch_pair_failed",
                index=index,
                origin=pair.origin,
                destination=pair.destination,
                failures=[failure.as_dict() for failure in exc.failures],
            )
        except Exception:  # noqa: BLE001 - one lane must not sink the batch
            logger.exception(
                "mileage_batch_pair_crashed",
                index=index,
                origin=pair.origin,
                destination=pair.destination,
            )
        mileage_batch_sentinels_total.inc()
        return DistanceResult.sentinel()


__all__ = ["BatchResolver", "DEFAULT_CONCURRENCY", "LanePair"]
