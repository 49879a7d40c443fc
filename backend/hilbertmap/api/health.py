"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from hilbertmap import __version__
from hilbertmap.config import Settings
from hilbertmap.dependencies import get_session, get_settings
from hilbertmap.engine.session import MapSession
from hilbertmap.models.responses import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    session: MapSession = Depends(get_session),
    cfg: Settings = Depends(get_settings),
) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        address_space=cfg.hilbertmap_address_space,
        regions_loaded=len(session.index),
    )
