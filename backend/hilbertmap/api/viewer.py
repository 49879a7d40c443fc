"""/api/map/* — load ranges, navigate the view, hit-test and render frames."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from hilbertmap.dependencies import get_session
from hilbertmap.engine.errors import InvalidArgument
from hilbertmap.engine.rasterizer import BLOCK_SIZE, FINE_BLOCK_SIZE, draw_grid
from hilbertmap.engine.regions import AddressRange
from hilbertmap.engine.session import MapSession, SessionBusy
from hilbertmap.models.requests import LoadRequest, PixelRequest
from hilbertmap.models.responses import (
    GridResponse,
    GridSegmentModel,
    HitResponse,
    LoadResponse,
    RegionInfo,
    ScaleEntryModel,
    ScaleResponse,
    ZoomResponse,
)
from hilbertmap.models.view_state import ViewState
from hilbertmap.utils.formatting import alignment, format_bytes, scale_key
from hilbertmap.utils.png import encode_png

router = APIRouter(prefix="/map")


@contextmanager
def _http_errors() -> Iterator[None]:
    try:
        yield
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except SessionBusy as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


def _region_info(region: AddressRange, address_bits: int) -> RegionInfo:
    return RegionInfo(
        label=region.label,
        start=f"{region.start:#x}",
        end=f"{region.end:#x}",
        color=list(region.color),
        size=f"{region.size:#x}",
        size_human=format_bytes(region.size),
        start_alignment=format_bytes(alignment(region.start, address_bits)),
        end_alignment=format_bytes(alignment(region.end, address_bits)),
    )


@router.post("/load", response_model=LoadResponse)
def load(req: LoadRequest, session: MapSession = Depends(get_session)) -> LoadResponse:
    with _http_errors():
        result = session.load_text(req.text, req.format or None)
    return LoadResponse(
        format=result.format.value,
        accepted=result.accepted,
        skipped=result.skipped,
        skipped_lines=result.skipped_lines,
        state=ViewState.from_state(session.state),
    )


@router.get("/state", response_model=ViewState)
def get_state(session: MapSession = Depends(get_session)) -> ViewState:
    return ViewState.from_state(session.state)


@router.put("/state", response_model=ViewState)
def put_state(view: ViewState, session: MapSession = Depends(get_session)) -> ViewState:
    with _http_errors():
        state = session.restore(view.to_state(session.space))
    return ViewState.from_state(state)


@router.post("/zoom", response_model=ZoomResponse)
def zoom(req: PixelRequest, session: MapSession = Depends(get_session)) -> ZoomResponse:
    with _http_errors():
        transition = session.zoom_in(req.x, req.y)
    if transition is None:
        return ZoomResponse(zoomed=False, state=ViewState.from_state(session.state))
    return ZoomResponse(
        zoomed=True,
        cell=list(transition.cell),
        state=ViewState.from_state(transition.after),
    )


@router.post("/reset", response_model=ViewState)
def reset(session: MapSession = Depends(get_session)) -> ViewState:
    with _http_errors():
        state = session.reset()
    return ViewState.from_state(state)


@router.post("/hit", response_model=HitResponse)
def hit(req: PixelRequest, session: MapSession = Depends(get_session)) -> HitResponse:
    with _http_errors():
        result = session.hit_test(req.x, req.y)
    if result is None:
        return HitResponse()
    region = None
    if result.region is not None:
        region = _region_info(result.region, session.space.address_bits)
    return HitResponse(address=f"{result.address:#x}", region=region)


@router.post("/highlight", response_model=HitResponse)
def highlight(req: PixelRequest, session: MapSession = Depends(get_session)) -> HitResponse:
    with _http_errors():
        region = session.highlight(req.x, req.y)
    if region is None:
        return HitResponse()
    return HitResponse(
        address=None,
        region=_region_info(region, session.space.address_bits),
    )


@router.delete("/highlight", status_code=204)
def clear_highlight(session: MapSession = Depends(get_session)) -> Response:
    with _http_errors():
        session.clear_highlight()
    return Response(status_code=204)


@router.get("/render.png")
def render_png(
    grid: bool = Query(False, description="Overlay the locality grid"),
    session: MapSession = Depends(get_session),
) -> Response:
    with _http_errors():
        frame = session.frame()
        if grid:
            frame = draw_grid(frame, session.grid(BLOCK_SIZE))
    return Response(content=encode_png(frame), media_type="image/png")


@router.get("/grid", response_model=GridResponse)
def grid(
    block: int = Query(BLOCK_SIZE, description=f"Block size in pixels ({BLOCK_SIZE} or {FINE_BLOCK_SIZE})"),
    session: MapSession = Depends(get_session),
) -> GridResponse:
    if block < 2 or block > session.space.resolution or block & (block - 1):
        raise HTTPException(status_code=400, detail=f"Block size must be a power of two in [2, {session.space.resolution}]")
    segments = session.grid(block)
    return GridResponse(
        block=block,
        segments=[
            GridSegmentModel(x0=s.x0, y0=s.y0, x1=s.x1, y1=s.y1, contiguous=s.contiguous)
            for s in segments
        ],
    )


@router.get("/scale", response_model=ScaleResponse)
def scale(session: MapSession = Depends(get_session)) -> ScaleResponse:
    key = scale_key(session.state, session.space)
    return ScaleResponse(
        level=key.level,
        range=f"{key.min_addr:#x} - {key.max_addr:#x}",
        range_human=format_bytes(key.span),
        bytes_per_pixel=key.bytes_per_pixel,
        pixel_human=format_bytes(key.bytes_per_pixel),
        bytes_per_square=key.bytes_per_square,
        square_human=format_bytes(key.bytes_per_square),
        entries=[
            ScaleEntryModel(label=e.label, bytes=e.bytes, pixels=e.pixels, side=e.side)
            for e in key.entries
        ],
    )
