import logging

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from streala.containers import Container
from streala.database.session import get_db
from streala.schemas.health import HealthCheckResponse
from streala.services.realtime_service import RealtimeService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
@inject
async def health_check(
    db: Session = Depends(get_db),
    realtime_service: RealtimeService = Depends(Provide[Container.gateways.realtime_service]),
) -> HealthCheckResponse:
    """Health check endpoint."""
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"[health] Database check failed: {e}")
        return HealthCheckResponse(status="unhealthy", database=False, error=str(e))

    return HealthCheckResponse(realtime=await realtime_service.ping())
