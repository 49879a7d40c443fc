"""FastAPI dependency injection."""

from __future__ import annotations

from hilbertmap.config import Settings, settings
from hilbertmap.engine.address_space import get_preset
from hilbertmap.engine.session import MapSession

_session: MapSession | None = None


def get_settings() -> Settings:
    return settings


def get_session() -> MapSession:
    """The process-wide map session, created on first use."""
    global _session
    if _session is None:
        _session = MapSession(space=get_preset(settings.hilbertmap_address_space))
    return _session


def set_session(session: MapSession | None) -> None:
    """Replace the process-wide session (startup loading, tests)."""
    global _session
    _session = session
