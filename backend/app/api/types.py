from __future__ import annotations

from typing import Annotated

from fastapi import Query

LocationQuery = Annotated[
    str | None,
    Query(
        max_length=255,
        description="Free-text location (e.g., 'Chicago, IL' or '60601')",
    ),
]

EquipmentQuery = Annotated[
    str | None,
    Query(
        max_length=64,
        description="Equipment class forwarded to practical providers (e.g., dry_van, reefer)",
    ),
]

HazmatQuery = Annotated[bool, Query(description="Route as a hazardous materials load")]

StopsQuery = Annotated[
    list[str] | None,
    Query(alias="stop", description="Intermediate stop; repeat for several"),
]
