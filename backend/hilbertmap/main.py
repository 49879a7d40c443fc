"""FastAPI app factory."""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hilbertmap import __version__
from hilbertmap.config import settings

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.hilbertmap_log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Hilbert Map",
        description="Hilbert curve address space maps — locality-preserving zoomable bitmaps",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _load_startup_input()

    from hilbertmap.api.router import api_router

    app.include_router(api_router)

    return app


def _load_startup_input() -> None:
    """Load the configured range description into the shared session."""
    if not settings.hilbertmap_input_file:
        return

    from hilbertmap.dependencies import get_session

    result = get_session().load_path(
        settings.hilbertmap_input_file,
        settings.hilbertmap_input_format or None,
    )
    logger.info(
        "Loaded %s: %d ranges (%d lines skipped)",
        settings.hilbertmap_input_file, result.accepted, result.skipped,
    )


app = create_app()
