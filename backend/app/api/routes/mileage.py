from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ...logging_config import get_logger
from ...mileage.contracts import DistanceResult, ProviderStatus, ResolutionOptions
from ...mileage.errors import AllProvidersFailedError
from ...mileage.service import MileageService, get_mileage_service
from ...schemas import MileageBatchRequest, MileageBatchResponse, MileageErrorResponse
from ...settings import settings
from ..types import EquipmentQuery, HazmatQuery, LocationQuery, StopsQuery
from ..utils import all_failed_response, require_location

router = APIRouter(prefix="/mileage", tags=["mileage"])

logger = get_logger(__name__)


@router.get(
    "/calculate",
    response_model=DistanceResult,
    responses={502: {"model": MileageErrorResponse}},
)
async def calculate_distance(
    origin: LocationQuery = None,
    destination: LocationQuery = None,
    equipment: EquipmentQuery = None,
    hazmat: HazmatQuery = False,
    stops: StopsQuery = None,
    service: MileageService = Depends(get_mileage_service),
):
    origin_text = require_location("origin", origin)
    destination_text = require_location("destination", destination)
    options = ResolutionOptions(equipment=equipment, hazmat=hazmat, stops=tuple(stops or ()))
    try:
        return await service.calculate(origin_text, destination_text, options)
    except AllProvidersFailedError as exc:
        return all_failed_response(exc)


@router.get("/provider", response_model=ProviderStatus)
def provider_status(service: MileageService = Depends(get_mileage_service)):
    return service.status()


@router.post("/batch", response_model=MileageBatchResponse)
async def calculate_batch(
    payload: MileageBatchRequest,
    service: MileageService = Depends(get_mileage_service),
):
    if not payload.pairs:
        raise HTTPException(400, "'pairs' must be a non-empty array")
    limit = settings.MILEAGE_BATCH_MAX_PAIRS
    if len(payload.pairs) > limit:
        raise HTTPException(400, f"At most {limit} pairs per batch (got {len(payload.pairs)})")

    lanes = [pair.to_lane() for pair in payload.pairs]
    results = await service.calculate_batch(lanes)
    logger.info(
        "mileage_batch_completed",
        pairs=len(lanes),
        failed=sum(1 for result in results if result.is_sentinel),
    )
    return MileageBatchResponse(results=results)
