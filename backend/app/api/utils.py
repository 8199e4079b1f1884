from __future__ import annotations

from fastapi import HTTPException
from fastapi.responses import JSONResponse

from ..mileage.errors import AllProvidersFailedError
from ..schemas import MileageErrorResponse, ProviderFailureOut


def require_location(field: str, raw: str | None) -> str:
    value = (raw or "").strip()
    if not value:
        raise HTTPException(400, f"'{field}' is required")
    return value


def all_failed_response(exc: AllProvidersFailedError) -> JSONResponse:
    body = MileageErrorResponse(
        detail="All mileage providers failed",
        failures=[ProviderFailureOut(**failure.as_dict()) for failure in exc.failures],
    )
    return JSONResponse(status_code=502, content=body.model_dump())


__all__ = ["all_failed_response", "require_location"]
