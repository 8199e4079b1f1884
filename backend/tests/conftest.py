import asyncio
import os
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import sentry_sdk
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Disable outbound Sentry calls during tests
sentry_sdk.init = lambda *args, **kwargs: None  # type: ignore[assignment]
os.environ["SENTRY_DSN"] = ""
test_data_dir = ROOT / "artifacts" / "test-data"
test_data_dir.mkdir(parents=True, exist_ok=True)
os.environ["DATA_DIR"] = str(test_data_dir)
os.environ.pop("DATABASE_URL", None)

from backend.app.db.core import create_tables  # noqa: E402
from backend.app.mileage.cache import DistanceCache  # noqa: E402
from backend.app.mileage.contracts import DistanceResult  # noqa: E402
from backend.app.mileage.errors import UpstreamError  # noqa: E402


class FakeClock:
    """Settable UTC clock for TTL tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeProvider:
    """
    In-memory provider double.

    `fail_on` lists origins that raise `error` (an UpstreamError by default); `delays` maps
    origins to seconds slept before answering. Concurrent calls are counted so tests can
    assert on the fan-out bound.
    """

    def __init__(
        self,
        name: str,
        *,
        route_type: str = "practical",
        source: str | None = None,
        miles: int = 100,
        hours: float = 2.0,
        error: Exception | None = None,
        fail_on: tuple[str, ...] = (),
        delays: dict[str, float] | None = None,
        miles_by_origin: dict[str, int] | None = None,
        configured: bool = True,
    ) -> None:
        self.name = name
        self.source = source or name
        self.route_type = route_type
        self.miles = miles
        self.hours = hours
        self.error = error
        self.fail_on = set(fail_on)
        self.delays = delays or {}
        self.miles_by_origin = miles_by_origin or {}
        self.configured = configured
        self.calls: list[tuple[str, str, object]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def calculate(self, origin, destination, options=None) -> DistanceResult:
        self.calls.append((origin, destination, options))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(origin, 0.0)
            if delay:
                await asyncio.sleep(delay)
            if self.error is not None:
                raise self.error
            if origin in self.fail_on:
                raise UpstreamError(self.name, f"cannot route {origin}")
            return DistanceResult(
                practical_miles=self.miles_by_origin.get(origin, self.miles),
                drive_time_hours=self.hours,
                source=self.source,
                route_type=self.route_type,
            )
        finally:
            self.in_flight -= 1


@pytest.fixture
def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'mileage.db'}", poolclass=NullPool)
    asyncio.run(create_tables(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(engine, clock) -> DistanceCache:
    return DistanceCache(engine, ttl=timedelta(days=30), clock=clock)


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def providers() -> dict[str, FakeProvider]:
    return {
        "pcmiler": FakeProvider("pcmiler", miles=812),
        "milemaker": FakeProvider("milemaker", miles=815),
        "google": FakeProvider(
            "google", source="google_estimated", route_type="estimated", miles=790
        ),
    }
