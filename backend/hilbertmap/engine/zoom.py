"""Zoom/viewport state machine and the address <-> pixel transform.

A ``ZoomState`` is an immutable value. ``zoom_in`` and ``reset`` return a new
state and never touch the one passed in; the caller owns the single current
instance and threads it through rendering and hit tests.

Transform (level L, ``u = units_per_pixel(L)``, an exact integer)::

    pixel     = floor((canonical - offset) / u)
    canonical = offset + pixel * u

The inverse yields the top-left canonical unit of the pixel footprint, so
forward(inverse(p)) == p for every pixel that maps onto a tile.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from hilbertmap.engine.address_space import ZOOM_GRID, AddressSpace
from hilbertmap.engine.errors import InvalidArgument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZoomState:
    """Current view: zoom level, visible address range and canonical offset."""

    level: int
    min_addr: int
    max_addr: int
    offset_x: int = 0
    offset_y: int = 0

    @property
    def span(self) -> int:
        return self.max_addr - self.min_addr


def root_state(space: AddressSpace) -> ZoomState:
    return ZoomState(level=0, min_addr=0, max_addr=space.ceiling, offset_x=0, offset_y=0)


def reset(space: AddressSpace) -> ZoomState:
    """Return unconditionally to the full view."""
    return root_state(space)


def viewport_size(state: ZoomState, space: AddressSpace) -> tuple[int, int]:
    return space.viewport_size(state.level)


def bytes_per_pixel(state: ZoomState, space: AddressSpace) -> int:
    """Addresses covered by one pixel, floored at 1."""
    width, height = viewport_size(state, space)
    return max(1, state.span // (width * height))


# ── Forward: address -> pixel ──


def address_to_pixel(
    address: int, state: ZoomState, space: AddressSpace
) -> tuple[int, int] | None:
    """Pixel showing ``address`` under ``state``, or None if not visible."""
    canonical = space.address_to_canonical(address)
    if canonical is None:
        return None
    upp = space.units_per_pixel(state.level)
    px = (canonical[0] - state.offset_x) // upp
    py = (canonical[1] - state.offset_y) // upp
    width, height = viewport_size(state, space)
    if 0 <= px < width and 0 <= py < height:
        return px, py
    return None


def addresses_to_pixels(
    addresses: ArrayLike, state: ZoomState, space: AddressSpace
) -> tuple[NDArray[np.int64], NDArray[np.int64], NDArray[np.bool_]]:
    """Vectorized :func:`address_to_pixel`. Returns (px, py, visible)."""
    xs, ys = space.addresses_to_canonical(addresses)
    upp = space.units_per_pixel(state.level)
    px = (xs - state.offset_x) // upp
    py = (ys - state.offset_y) // upp
    width, height = viewport_size(state, space)
    visible = (px >= 0) & (px < width) & (py >= 0) & (py < height)
    return px, py, visible


# ── Inverse: pixel -> address ──


def pixel_to_canonical(px: int, py: int, state: ZoomState, space: AddressSpace) -> tuple[int, int]:
    upp = space.units_per_pixel(state.level)
    return state.offset_x + px * upp, state.offset_y + py * upp


def pixel_to_address(px: int, py: int, state: ZoomState, space: AddressSpace) -> int | None:
    """Address represented by pixel (px, py), or None outside the viewport or off the curve."""
    if isinstance(px, bool) or isinstance(py, bool) or not isinstance(px, (int, np.integer)) \
            or not isinstance(py, (int, np.integer)):
        raise InvalidArgument(f"Pixel coordinates must be integers, got ({px!r}, {py!r})")
    width, height = viewport_size(state, space)
    if not (0 <= px < width and 0 <= py < height):
        return None
    x, y = pixel_to_canonical(int(px), int(py), state, space)
    return space.canonical_to_address(x, y)


def pixels_to_addresses(
    pxs: ArrayLike, pys: ArrayLike, state: ZoomState, space: AddressSpace
) -> tuple[NDArray[np.int64], NDArray[np.bool_]]:
    """Vectorized :func:`pixel_to_address`. Returns (addresses, valid).

    Pixels outside the viewport are invalid with address -1.
    """
    px = np.asarray(pxs, dtype=np.int64)
    py = np.asarray(pys, dtype=np.int64)
    width, height = viewport_size(state, space)
    inside = (px >= 0) & (px < width) & (py >= 0) & (py < height)

    upp = space.units_per_pixel(state.level)
    addrs, valid = space.canonical_to_addresses(state.offset_x + px * upp, state.offset_y + py * upp)
    valid &= inside
    addrs[~inside] = -1
    return addrs, valid


# ── Transitions ──


def zoom_cell(px: int, py: int, space: AddressSpace) -> tuple[int, int]:
    """Column and row of the zoom grid cell containing pixel (px, py)."""
    cell_pixels = space.resolution // ZOOM_GRID
    return px // cell_pixels, py // cell_pixels


def zoom_in(state: ZoomState, px: int, py: int, space: AddressSpace) -> ZoomState:
    """Narrow the view to the 8x8 grid cell under pixel (px, py).

    Returns ``state`` itself when the zoom is not possible: already at the
    deepest level, or the pixel is outside the viewport or off the curve.
    """
    if state.level >= space.max_level:
        return state

    width, height = viewport_size(state, space)
    if not (0 <= px < width and 0 <= py < height):
        return state

    address = pixel_to_address(px, py, state, space)
    if address is None:
        return state

    # Sub-range containing the clicked address
    new_span = space.level_span(state.level + 1)
    cell_index = (address - state.min_addr) // new_span
    new_min = state.min_addr + cell_index * new_span
    new_max = new_min + new_span

    # Matching square of the pixel grid
    col, row = zoom_cell(px, py, space)
    cell_units = (space.resolution // ZOOM_GRID) * space.units_per_pixel(state.level)
    new_state = ZoomState(
        level=state.level + 1,
        min_addr=new_min,
        max_addr=new_max,
        offset_x=state.offset_x + col * cell_units,
        offset_y=state.offset_y + row * cell_units,
    )
    logger.debug(
        "zoom_in level %d -> %d at (%d, %d): %#x-%#x",
        state.level, new_state.level, px, py, new_min, new_max,
    )
    return new_state


# ── Validation and serialization ──


def validate_state(state: ZoomState, space: AddressSpace) -> ZoomState:
    """Check that ``state`` is reachable from the root view; return it unchanged."""
    if not 0 <= state.level <= space.max_level:
        raise InvalidArgument(f"Zoom level {state.level} outside [0, {space.max_level}]")

    if state.level == 0:
        if state != root_state(space):
            raise InvalidArgument("Level 0 view must cover the whole address space with zero offset")
        return state

    span = space.level_span(state.level)
    if state.span != span:
        raise InvalidArgument(
            f"Range {state.min_addr:#x}-{state.max_addr:#x} is not {span:#x} wide "
            f"as required at level {state.level}"
        )
    if state.min_addr < 0 or state.max_addr > space.ceiling or state.min_addr % span:
        raise InvalidArgument(f"Range start {state.min_addr:#x} is not aligned to {span:#x}")

    # The footprint of an aligned range is a square of the pixel grid
    canonical = space.address_to_canonical(state.min_addr)
    if canonical is None:
        raise InvalidArgument(f"Range start {state.min_addr:#x} outside the address space")
    side = space.resolution * space.units_per_pixel(state.level)
    expected = (canonical[0] - canonical[0] % side, canonical[1] - canonical[1] % side)
    if (state.offset_x, state.offset_y) != expected:
        raise InvalidArgument(
            f"Offset ({state.offset_x}, {state.offset_y}) does not match range "
            f"{state.min_addr:#x}-{state.max_addr:#x} (expected {expected})"
        )
    return state


def to_query(state: ZoomState) -> dict[str, str]:
    """Compact key/value form for URL query strings."""
    return {
        "level": str(state.level),
        "min": f"{state.min_addr:#x}",
        "max": f"{state.max_addr:#x}",
        "ox": str(state.offset_x),
        "oy": str(state.offset_y),
    }


def from_query(params: Mapping[str, str], space: AddressSpace) -> ZoomState:
    """Inverse of :func:`to_query`. Missing keys fall back to the root view."""
    if not params or "level" not in params:
        return root_state(space)
    try:
        state = ZoomState(
            level=int(params["level"]),
            min_addr=int(params.get("min", "0"), 16),
            max_addr=int(params.get("max", hex(space.ceiling)), 16),
            offset_x=int(params.get("ox", "0")),
            offset_y=int(params.get("oy", "0")),
        )
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"Malformed view state {dict(params)!r}: {e}") from e
    return validate_state(state, space)
