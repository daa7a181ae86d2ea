import time
from datetime import UTC, datetime

from fastapi import APIRouter

from coupon_manager.schemas.health import HealthResponse

router = APIRouter()

_started = time.monotonic()


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health() -> HealthResponse:
    return HealthResponse(
        status="OK",
        timestamp=datetime.now(UTC),
        uptime=round(time.monotonic() - _started, 3),
    )
