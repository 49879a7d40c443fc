"""API response models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from hilbertmap.models.view_state import ViewState


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    address_space: str = ""
    regions_loaded: int = 0


class LoadResponse(BaseModel):
    format: str
    accepted: int = 0
    skipped: int = 0
    skipped_lines: list[int] = Field(default_factory=list)
    state: ViewState


class RegionInfo(BaseModel):
    label: str
    start: str
    end: str
    color: list[int]
    size: str
    size_human: str
    start_alignment: str
    end_alignment: str


class HitResponse(BaseModel):
    address: str | None = None
    region: RegionInfo | None = None


class ZoomResponse(BaseModel):
    zoomed: bool = False
    cell: list[int] | None = None
    state: ViewState


class GridSegmentModel(BaseModel):
    x0: int
    y0: int
    x1: int
    y1: int
    contiguous: bool


class GridResponse(BaseModel):
    block: int
    segments: list[GridSegmentModel] = Field(default_factory=list)


class ScaleEntryModel(BaseModel):
    label: str
    bytes: int
    pixels: int
    side: float


class ScaleResponse(BaseModel):
    level: int
    range: str
    range_human: str
    bytes_per_pixel: int
    pixel_human: str
    bytes_per_square: int
    square_human: str
    entries: list[ScaleEntryModel] = Field(default_factory=list)
