"""Serializable view state — the URL-query form of ``ZoomState``."""

from __future__ import annotations

from pydantic import BaseModel, Field

from hilbertmap.engine.address_space import AddressSpace
from hilbertmap.engine.zoom import ZoomState, from_query, to_query


class ViewState(BaseModel):
    level: int = Field(0, ge=0, description="Zoom level (0 = full view)")
    min: str = Field("0x0", description="Lowest visible address, hex")
    max: str = Field(..., description="Exclusive highest visible address, hex")
    ox: int = Field(0, description="Canonical X offset of the view's top-left corner")
    oy: int = Field(0, description="Canonical Y offset of the view's top-left corner")

    @classmethod
    def from_state(cls, state: ZoomState) -> ViewState:
        q = to_query(state)
        return cls(level=int(q["level"]), min=q["min"], max=q["max"], ox=int(q["ox"]), oy=int(q["oy"]))

    def to_state(self, space: AddressSpace) -> ZoomState:
        """Validated ``ZoomState``; raises InvalidArgument if inconsistent."""
        return from_query(
            {
                "level": str(self.level),
                "min": self.min,
                "max": self.max,
                "ox": str(self.ox),
                "oy": str(self.oy),
            },
            space,
        )
