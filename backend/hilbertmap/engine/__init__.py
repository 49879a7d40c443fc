"""Hilbert curve memory map engine."""

from hilbertmap.engine.address_space import AddressSpace, CurveTile, get_preset
from hilbertmap.engine.errors import InvalidArgument
from hilbertmap.engine.regions import AddressRange, RegionIndex
from hilbertmap.engine.session import MapSession, SessionBusy
from hilbertmap.engine.zoom import ZoomState

__all__ = [
    "AddressSpace",
    "CurveTile",
    "get_preset",
    "InvalidArgument",
    "AddressRange",
    "RegionIndex",
    "MapSession",
    "SessionBusy",
    "ZoomState",
]
