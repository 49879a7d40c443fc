"""Rasterization — region index + zoom state -> RGBA pixel buffer.

Buffers are ``(height, width, 4)`` uint8 numpy arrays.

Sampling, not enumeration: each visible region is walked from its clipped
start in steps of ``bytes_per_pixel`` and every sample is projected through
the Hilbert transform. With aligned regions that lands exactly one sample
per covered pixel. A region smaller than one pixel's worth of addresses may
fall between samples and not appear at all; this is a precision limit of
the method, not a bug.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from hilbertmap.engine.address_space import AddressSpace
from hilbertmap.engine.regions import RGBA, AddressRange, RegionIndex
from hilbertmap.engine.zoom import (
    ZoomState,
    addresses_to_pixels,
    bytes_per_pixel,
    pixels_to_addresses,
    viewport_size,
)

logger = logging.getLogger(__name__)

PixelBuffer = NDArray[np.uint8]

BACKGROUND: RGBA = (0, 0, 0, 255)
HIGHLIGHT: RGBA = (255, 255, 255, 255)
GRID_COLOR: RGBA = (255, 255, 255, 204)

# Locality overlay block sizes in pixels
BLOCK_SIZE = 128
FINE_BLOCK_SIZE = 16

# Diagonal stripe pattern for highlighted regions
_SHADE_PERIOD = 8
_SHADE_BAND = (2, 3, 4)

# Dotted line pattern for contiguous boundaries: 2 on, 4 off
_DOT_ON = 2
_DOT_PERIOD = 6
_SOLID_WIDTH = 3


def new_buffer(width: int, height: int, color: RGBA = BACKGROUND) -> PixelBuffer:
    buf = np.empty((height, width, 4), dtype=np.uint8)
    buf[:, :] = color
    return buf


def sample_addresses(region: AddressRange, state: ZoomState, space: AddressSpace) -> NDArray[np.int64]:
    """Addresses sampled from ``region`` clipped to the visible range."""
    start = max(region.start, state.min_addr)
    end = min(region.end, state.max_addr)
    if start >= end:
        return np.empty(0, dtype=np.int64)
    return np.arange(start, end, bytes_per_pixel(state, space), dtype=np.int64)


def region_pixels(
    region: AddressRange, state: ZoomState, space: AddressSpace
) -> tuple[NDArray[np.int64], NDArray[np.int64]]:
    """(px, py) of every visible sample of ``region``."""
    addrs = sample_addresses(region, state, space)
    if addrs.size == 0:
        empty = np.empty(0, dtype=np.int64)
        return empty, empty
    px, py, visible = addresses_to_pixels(addrs, state, space)
    return px[visible], py[visible]


def render(index: RegionIndex, state: ZoomState, space: AddressSpace) -> PixelBuffer:
    """Paint every visible region into a fresh buffer.

    Regions are painted in ascending start order; a later region wins at
    pixels it shares with an earlier one.
    """
    width, height = viewport_size(state, space)
    buf = new_buffer(width, height)

    visible = index.visible_ranges(state.min_addr, state.max_addr)
    for region in visible:
        px, py = region_pixels(region, state, space)
        buf[py, px] = region.color

    logger.debug(
        "Rendered %d/%d regions at level %d (%d bytes/pixel)",
        len(visible), len(index), state.level, bytes_per_pixel(state, space),
    )
    return buf


# ── Highlight ──


def apply_shading(
    buf: PixelBuffer, region: AddressRange, state: ZoomState, space: AddressSpace
) -> PixelBuffer:
    """Stripe ``region``'s pixels in place. Returns the pre-shading snapshot."""
    snapshot = buf.copy()
    px, py = region_pixels(region, state, space)
    band = np.isin((px + py) % _SHADE_PERIOD, _SHADE_BAND)
    buf[py[band], px[band]] = HIGHLIGHT
    return snapshot


def remove_shading(buf: PixelBuffer, snapshot: PixelBuffer) -> PixelBuffer:
    """Restore ``buf`` from a snapshot taken by :func:`apply_shading`."""
    np.copyto(buf, snapshot)
    return buf


# ── Locality grid ──


@dataclass(frozen=True)
class GridSegment:
    """One block edge. ``contiguous`` means the blocks either side are neighbours in address space."""

    x0: int
    y0: int
    x1: int
    y1: int
    contiguous: bool

    @property
    def vertical(self) -> bool:
        return self.x0 == self.x1


def grid_segments(
    state: ZoomState, space: AddressSpace, block: int = BLOCK_SIZE
) -> list[GridSegment]:
    """Classify every block edge of the frame, borders included.

    The address at each block's centre is rounded down to the block's byte
    span; two blocks are contiguous when those differ by exactly one span.
    Edges with no address on one side count as contiguous.
    """
    width, height = viewport_size(state, space)
    block_bytes = bytes_per_pixel(state, space) * block * block
    half = block // 2

    # (line position, segment start) pairs for both orientations
    v_lines = [(i, j) for i in range(0, width + 1, block) for j in range(0, height, block)]
    h_lines = [(i, j) for i in range(0, height + 1, block) for j in range(0, width, block)]

    def classify(ax, ay, bx, by) -> NDArray[np.bool_]:
        a, a_ok = pixels_to_addresses(ax, ay, state, space)
        b, b_ok = pixels_to_addresses(bx, by, state, space)
        diff = np.abs((a // block_bytes) - (b // block_bytes)) * block_bytes
        return ~(a_ok & b_ok) | (diff == block_bytes)

    segments: list[GridSegment] = []
    if v_lines:
        pos = np.array(v_lines, dtype=np.int64)
        x, y = pos[:, 0], pos[:, 1]
        flags = classify(x - block + half, y + half, x + half, y + half)
        segments.extend(
            GridSegment(int(i), int(j), int(i), int(j) + block, bool(c))
            for i, j, c in zip(x, y, flags)
        )
    if h_lines:
        pos = np.array(h_lines, dtype=np.int64)
        y, x = pos[:, 0], pos[:, 1]
        flags = classify(x + half, y - block + half, x + half, y + half)
        segments.extend(
            GridSegment(int(j), int(i), int(j) + block, int(i), bool(c))
            for i, j, c in zip(y, x, flags)
        )
    return segments


def draw_grid(buf: PixelBuffer, segments: list[GridSegment]) -> PixelBuffer:
    """Return a copy of ``buf`` with the locality grid blended on top."""
    out = buf.astype(np.float32)
    height, width = buf.shape[:2]
    mask = np.zeros((height, width), dtype=bool)

    for seg in segments:
        if seg.vertical:
            length = seg.y1 - seg.y0
            along = np.arange(seg.y0, seg.y1)
        else:
            length = seg.x1 - seg.x0
            along = np.arange(seg.x0, seg.x1)
        if seg.contiguous:
            along = along[np.arange(length) % _DOT_PERIOD < _DOT_ON]
            offsets = [0]
        else:
            offsets = range(-(_SOLID_WIDTH // 2), _SOLID_WIDTH // 2 + 1)

        for off in offsets:
            if seg.vertical:
                col = seg.x0 + off
                if 0 <= col < width:
                    rows = along[(along >= 0) & (along < height)]
                    mask[rows, col] = True
            else:
                row = seg.y0 + off
                if 0 <= row < height:
                    cols = along[(along >= 0) & (along < width)]
                    mask[row, cols] = True

    alpha = GRID_COLOR[3] / 255.0
    color = np.array(GRID_COLOR[:3], dtype=np.float32)
    out[mask, :3] = out[mask, :3] * (1.0 - alpha) + color * alpha
    return np.rint(out).astype(np.uint8)
