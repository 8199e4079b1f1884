from __future__ import annotations

import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .core import Base


class MileageCacheRecord(Base):
    """One cached lane resolution, partitioned by the provider that computed it."""

    __tablename__ = "mileage_cache"
    __table_args__ = (
        UniqueConstraint(
            "origin_hash", "destination_hash", "provider", name="uq_mileage_cache_lane_provider"
        ),
        CheckConstraint("route_type IN ('estimated', 'practical')", name="ck_mileage_route_type"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    origin_hash = Column(String(64), nullable=False)
    destination_hash = Column(String(64), nullable=False)
    provider = Column(String(32), nullable=False, index=True)
    origin_text = Column(Text, nullable=False)
    destination_text = Column(Text, nullable=False)
    practical_miles = Column(Integer, nullable=False)
    shortest_miles = Column(Integer, nullable=True)
    drive_time_hours = Column(Float, nullable=False)
    toll_cost = Column(Float, nullable=True)
    route_type = Column(String(16), nullable=False)
    cached_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
