from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

RouteType = Literal["estimated", "practical", "error"]

ERROR_SOURCE = "error"


class ResolutionOptions(BaseModel):
    """Route-shaping hints passed through to providers that understand them."""

    model_config = ConfigDict(frozen=True)

    equipment: str | None = Field(default=None, max_length=64)
    hazmat: bool = False
    stops: tuple[str, ...] = ()

    @field_validator("equipment", mode="before")
    @classmethod
    def _blank_equipment(cls, value):  # type: ignore[override]
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("stops", mode="before")
    @classmethod
    def _clean_stops(cls, value):  # type: ignore[override]
        if not value:
            return ()
        if isinstance(value, str):
            value = (value,)
        return tuple(s.strip() for s in value if isinstance(s, str) and s.strip())


class DistanceResult(BaseModel):
    practical_miles: int
    shortest_miles: int | None = None
    drive_time_hours: float
    toll_cost: float | None = None
    source: str
    route_type: RouteType
    cached: bool = False

    @classmethod
    def sentinel(cls) -> DistanceResult:
        """Placeholder for a lane the batch path could not resolve."""
        return cls(
            practical_miles=0,
            shortest_miles=None,
            drive_time_hours=0.0,
            toll_cost=None,
            source=ERROR_SOURCE,
            route_type="error",
            cached=False,
        )

    @property
    def is_sentinel(self) -> bool:
        return self.source == ERROR_SOURCE


class ProviderStatus(BaseModel):
    active_provider: str
    configured: bool
    fallback_order: list[str] = Field(default_factory=list)


@dataclass(frozen=True, slots=True)
class CacheWriteOutcome:
    """Result of a write-through; callers log failures and move on."""

    ok: bool
    error: str | None = None


__all__ = [
    "CacheWriteOutcome",
    "DistanceResult",
    "ERROR_SOURCE",
    "ProviderStatus",
    "ResolutionOptions",
    "RouteType",
]
