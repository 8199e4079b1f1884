from pydantic import BaseModel, Field

from .mileage.batch import LanePair
from .mileage.contracts import DistanceResult, ResolutionOptions


class MileagePairIn(BaseModel):
    # Blank or missing locations become a placeholder result at their index
    origin: str | None = Field(default=None, max_length=255)
    destination: str | None = Field(default=None, max_length=255)
    equipment: str | None = Field(default=None, max_length=64)
    hazmat: bool = False
    stops: list[str] = Field(default_factory=list, max_length=25)

    def to_lane(self) -> LanePair:
        return LanePair(
            origin=self.origin or "",
            destination=self.destination or "",
            options=ResolutionOptions(
                equipment=self.equipment, hazmat=self.hazmat, stops=tuple(self.stops)
            ),
        )


class MileageBatchRequest(BaseModel):
    """Missing and empty `pairs` are rejected by the route, not here, so both map to 400."""

    pairs: list[MileagePairIn] | None = None


class MileageBatchResponse(BaseModel):
    results: list[DistanceResult]


class ProviderFailureOut(BaseModel):
    provider: str
    error: str
    message: str


class MileageErrorResponse(BaseModel):
    detail: str
    failures: list[ProviderFailureOut] = Field(default_factory=list)
