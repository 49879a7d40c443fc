"""Address space model — addresses, canonical Hilbert coordinates and pixel scale.

An address space of ``2**address_bits`` units is laid out on one or more
square Hilbert tiles of order ``canonical_order`` (the canonical coordinate
system). At zoom level 0 the whole layout is shown with ``base_scale``
canonical units per pixel. Each zoom level divides that by ``ZOOM_GRID``.

The address <-> canonical mapping is exact and integral: one canonical unit
holds ``bytes_per_unit`` consecutive addresses (1 in the 48-bit / order-24
case). Rounding only happens when several units share one pixel.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import ArrayLike, NDArray

from hilbertmap.engine.errors import InvalidArgument
from hilbertmap.engine.hilbert import (
    index_to_xy,
    index_to_xy_array,
    xy_to_index,
    xy_to_index_array,
)

# Cells per axis chosen on each zoom step (8x8 = 64 sub-ranges)
ZOOM_GRID = 8
_ZOOM_GRID_BITS = 3


@dataclass(frozen=True)
class CurveTile:
    """Placement of one Hilbert tile in the canonical plane.

    Origins are in canonical units and must be multiples of the tile side.
    Reflections mirror the tile's own curve before translation.
    """

    origin_x: int = 0
    origin_y: int = 0
    reflect_x: bool = False
    reflect_y: bool = False


def _is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


@dataclass(frozen=True)
class AddressSpace:
    """Fixed geometry of the map. Validated on construction."""

    address_bits: int = 48
    canonical_order: int = 24
    resolution: int = 1024
    max_level: int = 4
    tiles: tuple[CurveTile, ...] = field(default_factory=lambda: (CurveTile(),))

    def __post_init__(self) -> None:
        if self.canonical_order < 1:
            raise InvalidArgument(f"canonical_order must be >= 1, got {self.canonical_order}")
        if self.address_bits < 1:
            raise InvalidArgument(f"address_bits must be >= 1, got {self.address_bits}")
        if not _is_power_of_two(self.resolution):
            raise InvalidArgument(f"resolution must be a power of two, got {self.resolution}")
        if self.resolution > self.canonical_side:
            raise InvalidArgument(
                f"resolution {self.resolution} exceeds canonical grid side {self.canonical_side}"
            )
        if self.max_level < 0:
            raise InvalidArgument(f"max_level must be >= 0, got {self.max_level}")
        if _ZOOM_GRID_BITS * self.max_level > self.canonical_order - self.pixel_order:
            raise InvalidArgument(
                f"max_level {self.max_level} too deep: pixels would be smaller than "
                f"one canonical unit (order {self.canonical_order}, resolution {self.resolution})"
            )
        if not self.tiles:
            raise InvalidArgument("At least one curve tile is required")

        seen: set[tuple[int, int]] = set()
        for tile in self.tiles:
            if tile.origin_x < 0 or tile.origin_y < 0:
                raise InvalidArgument(f"Tile origin must be non-negative: {tile}")
            if tile.origin_x % self.canonical_side or tile.origin_y % self.canonical_side:
                raise InvalidArgument(f"Tile origin must be a multiple of the tile side: {tile}")
            key = (tile.origin_x, tile.origin_y)
            if key in seen:
                raise InvalidArgument(f"Duplicate tile origin: {key}")
            seen.add(key)

        if self.ceiling % len(self.tiles):
            raise InvalidArgument(
                f"{len(self.tiles)} tiles do not evenly divide 2**{self.address_bits}"
            )
        units = 1 << (2 * self.canonical_order)
        if self.tile_range < units or self.tile_range % units:
            raise InvalidArgument(
                f"Tile range {self.tile_range:#x} is not a whole multiple of "
                f"4**{self.canonical_order} canonical units"
            )

    # ── Derived constants ──

    @property
    def ceiling(self) -> int:
        """Exclusive upper bound of the address space."""
        return 1 << self.address_bits

    @property
    def canonical_side(self) -> int:
        return 1 << self.canonical_order

    @property
    def pixel_order(self) -> int:
        return self.resolution.bit_length() - 1

    @property
    def base_scale(self) -> int:
        """Canonical units per pixel at zoom level 0."""
        return 1 << (self.canonical_order - self.pixel_order)

    @property
    def tile_range(self) -> int:
        return self.ceiling // len(self.tiles)

    @property
    def bytes_per_unit(self) -> int:
        """Addresses per canonical unit."""
        return self.tile_range >> (2 * self.canonical_order)

    @property
    def extent(self) -> tuple[int, int]:
        """Canonical width and height of the bounding box of all tiles."""
        side = self.canonical_side
        width = max(t.origin_x for t in self.tiles) + side
        height = max(t.origin_y for t in self.tiles) + side
        return width, height

    def units_per_pixel(self, level: int) -> int:
        """Canonical units per pixel edge at ``level`` (always an exact integer)."""
        self._check_level(level)
        return self.base_scale >> (_ZOOM_GRID_BITS * level)

    def level_span(self, level: int) -> int:
        """Number of addresses visible at ``level``."""
        self._check_level(level)
        if level == 0:
            return self.ceiling
        return self.tile_range // (ZOOM_GRID * ZOOM_GRID) ** level

    def viewport_size(self, level: int) -> tuple[int, int]:
        """Pixel (width, height) of a frame at ``level``."""
        self._check_level(level)
        if level == 0:
            width, height = self.extent
            return width // self.base_scale, height // self.base_scale
        return self.resolution, self.resolution

    def _check_level(self, level: int) -> None:
        if not 0 <= level <= self.max_level:
            raise InvalidArgument(f"Zoom level {level} outside [0, {self.max_level}]")

    # ── Address <-> canonical ──

    def address_to_canonical(self, address: int) -> tuple[int, int] | None:
        """Canonical (x, y) of ``address``, or None outside the space."""
        if not 0 <= address < self.ceiling:
            return None
        tile_idx, local = divmod(address, self.tile_range)
        tile = self.tiles[tile_idx]
        x, y = index_to_xy(local // self.bytes_per_unit, self.canonical_order)
        return self._place(tile, x, y)

    def canonical_to_address(self, x: int, y: int) -> int | None:
        """First address of the canonical unit at (x, y), or None off every tile."""
        found = self._tile_at(x, y)
        if found is None:
            return None
        tile_idx, tile = found
        lx, ly = self._unplace(tile, x, y)
        index = xy_to_index(lx, ly, self.canonical_order)
        return tile_idx * self.tile_range + index * self.bytes_per_unit

    def addresses_to_canonical(
        self, addresses: ArrayLike
    ) -> tuple[NDArray[np.int64], NDArray[np.int64]]:
        """Vectorized :meth:`address_to_canonical`. All addresses must be in range."""
        addrs = np.asarray(addresses, dtype=np.int64)
        if addrs.size and (addrs.min() < 0 or addrs.max() >= self.ceiling):
            raise InvalidArgument("Addresses outside the address space")

        xs = np.empty_like(addrs)
        ys = np.empty_like(addrs)
        tile_ids = addrs // self.tile_range
        for tile_idx, tile in enumerate(self.tiles):
            sel = tile_ids == tile_idx
            if not np.any(sel):
                continue
            local = (addrs[sel] - tile_idx * self.tile_range) // self.bytes_per_unit
            x, y = index_to_xy_array(local, self.canonical_order)
            xs[sel], ys[sel] = self._place(tile, x, y)
        return xs, ys

    def canonical_to_addresses(
        self, xs: ArrayLike, ys: ArrayLike
    ) -> tuple[NDArray[np.int64], NDArray[np.bool_]]:
        """Vectorized :meth:`canonical_to_address`.

        Returns (addresses, valid). Entries that fall off every tile are
        marked invalid and their address is -1.
        """
        x = np.asarray(xs, dtype=np.int64)
        y = np.asarray(ys, dtype=np.int64)
        out = np.full(x.shape, -1, dtype=np.int64)
        valid = np.zeros(x.shape, dtype=bool)
        side = self.canonical_side
        for tile_idx, tile in enumerate(self.tiles):
            sel = (
                (x >= tile.origin_x)
                & (x < tile.origin_x + side)
                & (y >= tile.origin_y)
                & (y < tile.origin_y + side)
            )
            if not np.any(sel):
                continue
            lx, ly = self._unplace(tile, x[sel], y[sel])
            index = xy_to_index_array(lx, ly, self.canonical_order)
            out[sel] = tile_idx * self.tile_range + index * self.bytes_per_unit
            valid |= sel
        return out, valid

    def _tile_at(self, x: int, y: int) -> tuple[int, CurveTile] | None:
        side = self.canonical_side
        for idx, tile in enumerate(self.tiles):
            if tile.origin_x <= x < tile.origin_x + side and tile.origin_y <= y < tile.origin_y + side:
                return idx, tile
        return None

    def _place(self, tile: CurveTile, x, y):
        side = self.canonical_side
        if tile.reflect_x:
            x = side - 1 - x
        if tile.reflect_y:
            y = side - 1 - y
        return x + tile.origin_x, y + tile.origin_y

    def _unplace(self, tile: CurveTile, x, y):
        side = self.canonical_side
        x = x - tile.origin_x
        y = y - tile.origin_y
        if tile.reflect_x:
            x = side - 1 - x
        if tile.reflect_y:
            y = side - 1 - y
        return x, y


# ── Presets ──

MEMORY = AddressSpace()

IPV4 = AddressSpace(address_bits=32, canonical_order=16, resolution=1024, max_level=2)

# Two 48-bit halves stacked vertically, the upper half mirrored top-to-bottom
STACKED = AddressSpace(
    address_bits=49,
    canonical_order=24,
    resolution=1024,
    max_level=4,
    tiles=(
        CurveTile(),
        CurveTile(origin_y=1 << 24, reflect_y=True),
    ),
)

PRESETS: dict[str, AddressSpace] = {
    "memory": MEMORY,
    "ipv4": IPV4,
    "stacked": STACKED,
}


def get_preset(name: str) -> AddressSpace:
    try:
        return PRESETS[name]
    except KeyError:
        raise InvalidArgument(
            f"Unknown address space preset {name!r} (expected one of {sorted(PRESETS)})"
        ) from None
