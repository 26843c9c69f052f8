"""
Liveness endpoint: reports the version and the size of the conversion pool.
"""
from datetime import datetime

from fastapi import APIRouter, Depends

from lexdoc import __version__
from lexdoc.dependencies.conversion import get_conversion_service
from lexdoc.models.schemas import HealthCheckResponse
from lexdoc.services.conversion import ConversionService

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(
    service: ConversionService = Depends(get_conversion_service),
) -> HealthCheckResponse:
    return HealthCheckResponse(
        status="healthy",
        version=__version__,
        conversion_workers=service.workers,
        timestamp=datetime.utcnow(),
    )
