from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from ..config import Settings
from ..dependencies import get_metrics, get_settings
from ..errors import NotFoundError
from ..metrics import RequestMetrics

router = APIRouter(tags=["system"])


class HealthStatus(BaseModel):
    status: str
    timestamp: datetime


@router.get("/healthz", response_model=HealthStatus)
async def healthz():
    return HealthStatus(status="healthy", timestamp=datetime.now(timezone.utc))


@router.get("/metrics", response_class=PlainTextResponse)
async def read_metrics(
    settings: Settings = Depends(get_settings),
    metrics: RequestMetrics = Depends(get_metrics),
):
    if not settings.enable_metrics:
        raise NotFoundError()
    return PlainTextResponse(
        metrics.render(), media_type="text/plain; version=0.0.4"
    )
