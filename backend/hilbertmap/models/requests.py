"""API request models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LoadRequest(BaseModel):
    text: str = Field(..., description="Range description, one range per line")
    format: str | None = Field(
        default=None,
        description="native | maps | cidr (detected when omitted)",
    )


class PixelRequest(BaseModel):
    x: int = Field(..., description="Pixel column in the current frame")
    y: int = Field(..., description="Pixel row in the current frame")
