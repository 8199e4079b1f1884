"""Persistent, TTL-bounded distance cache partitioned by provider."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..db.models import MileageCacheRecord
from ..logging_config import get_logger
from .contracts import CacheWriteOutcome, DistanceResult, RouteType
from .keys import derive_key

logger = get_logger(__name__)

DEFAULT_TTL_DAYS = 30

_UPDATABLE = (
    "origin_text",
    "destination_text",
    "practical_miles",
    "shortest_miles",
    "drive_time_hours",
    "toll_cost",
    "route_type",
    "cached_at",
    "expires_at",
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is written in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class CacheEntry:
    origin_hash: str
    destination_hash: str
    provider: str
    origin_text: str
    destination_text: str
    practical_miles: int
    shortest_miles: int | None
    drive_time_hours: float
    toll_cost: float | None
    route_type: RouteType
    cached_at: datetime
    expires_at: datetime

    @classmethod
    def from_record(cls, record: MileageCacheRecord) -> CacheEntry:
        return cls(
            origin_hash=record.origin_hash,
            destination_hash=record.destination_hash,
            provider=record.provider,
            origin_text=record.origin_text,
            destination_text=record.destination_text,
            practical_miles=record.practical_miles,
            shortest_miles=record.shortest_miles,
            drive_time_hours=record.drive_time_hours,
            toll_cost=record.toll_cost,
            route_type=record.route_type,
            cached_at=_as_utc(record.cached_at),
            expires_at=_as_utc(record.expires_at),
        )

    def to_result(self, source: str) -> DistanceResult:
        return DistanceResult(
            practical_miles=self.practical_miles,
            shortest_miles=self.shortest_miles,
            drive_time_hours=self.drive_time_hours,
            toll_cost=self.toll_cost,
            source=source,
            route_type=self.route_type,
            cached=True,
        )


class DistanceCache:
    """
    Lane cache keyed by (origin hash, destination hash, provider).

    Rows past `expires_at` are misses even though they stay in the table until the next
    write-through overwrites them or `purge_expired` removes them. Writes are single-statement
    upserts, so concurrent writers to the same key resolve as last-write-wins.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        ttl: timedelta = timedelta(days=DEFAULT_TTL_DAYS),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.engine = engine
        self.ttl = ttl
        self._clock = clock
        self._sessions = async_sessionmaker(bind=engine, expire_on_commit=False)

    def _now(self) -> datetime:
        return _as_utc(self._clock())

    async def get(self, origin_key: str, dest_key: str, provider: str) -> CacheEntry | None:
        stmt = select(MileageCacheRecord).where(
            MileageCacheRecord.origin_hash == origin_key,
            MileageCacheRecord.destination_hash == dest_key,
            MileageCacheRecord.provider == provider,
        )
        async with self._sessions() as session:
            record = (await session.execute(stmt)).scalar_one_or_none()
        if record is None:
            return None
        entry = CacheEntry.from_record(record)
        if entry.expires_at <= self._now():
            return None
        return entry

    async def put(
        self, origin_text: str, dest_text: str, provider: str, result: DistanceResult
    ) -> CacheWriteOutcome:
        """Upsert the lane for `provider`. Never raises; failures come back in the outcome."""
        now = self._now()
        values = {
            "origin_hash": derive_key(origin_text),
            "destination_hash": derive_key(dest_text),
            "provider": provider,
            "origin_text": origin_text,
            "destination_text": dest_text,
            "practical_miles": result.practical_miles,
            "shortest_miles": result.shortest_miles,
            "drive_time_hours": result.drive_time_hours,
            "toll_cost": result.toll_cost,
            "route_type": result.route_type,
            "cached_at": now,
            "expires_at": now + self.ttl,
        }
        try:
            async with self._sessions() as session:
                await self._upsert(session, values)
                await session.commit()
        except Exception as exc:  # noqa: BLE001 - a cache write must never fail the lookup
            return CacheWriteOutcome(ok=False, error=f"{type(exc).__name__}: {exc}")
        return CacheWriteOutcome(ok=True)

    async def _upsert(self, session: AsyncSession, values: dict) -> None:
        dialect = self.engine.dialect.name
        if dialect in {"postgresql", "sqlite"}:
            if dialect == "postgresql":
                from sqlalchemy.dialects.postgresql import insert
            else:
                from sqlalchemy.dialects.sqlite import insert
            stmt = insert(MileageCacheRecord).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["origin_hash", "destination_hash", "provider"],
                set_={name: stmt.excluded[name] for name in _UPDATABLE},
            )
            await session.execute(stmt)
            return

        existing = (
            await session.execute(
                select(MileageCacheRecord).where(
                    MileageCacheRecord.origin_hash == values["origin_hash"],
                    MileageCacheRecord.destination_hash == values["destination_hash"],
                    MileageCacheRecord.provider == values["provider"],
                )
            )
        ).scalar_one_or_none()
        if existing is None:
            session.add(MileageCacheRecord(**values))
        else:
            for name in _UPDATABLE:
                setattr(existing, name, values[name])

    async def purge_expired(self) -> int:
        """Physically delete expired rows. Returns the number removed."""
        async with self._sessions() as session:
            result = await session.execute(
                delete(MileageCacheRecord).where(MileageCacheRecord.expires_at <= self._now())
            )
            await session.commit()
        removed = result.rowcount or 0
        logger.info("mileage_cache_purged", removed=removed)
        return removed


__all__ = ["CacheEntry", "DistanceCache", "DEFAULT_TTL_DAYS"]
