from __future__ import annotations

from datetime import datetime
from fastapi import APIRouter, HTTPException
from greenscore.deps import get_green_scheduling
from greenscore.errors import GreenSchedulingError
from greenscore.models.domain import HealthResponse

router = APIRouter()

@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", ts=datetime.now().isoformat())


@router.get("/ready", response_model=HealthResponse)
async def ready() -> HealthResponse:
    """
    Ready once the plugin can be built: arguments validated and the node
    label lookup configured. Does not call the telemetry API.
    """
    try:
        get_green_scheduling()
    except GreenSchedulingError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return HealthResponse(status="ready", ts=datetime.now().isoformat())
