"""Human-readable sizes, alignment and the scale key. No engine state."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from hilbertmap.engine.address_space import AddressSpace
from hilbertmap.engine.rasterizer import BLOCK_SIZE
from hilbertmap.engine.zoom import ZoomState, bytes_per_pixel

KIB = 1 << 10
MIB = 1 << 20
GIB = 1 << 30
TIB = 1 << 40

_UNITS = ((TIB, "TiB"), (GIB, "GiB"), (MIB, "MiB"), (KIB, "KiB"))

# Reference sizes drawn in the scale key
SCALE_SIZES: tuple[tuple[int, str], ...] = (
    (4 * KIB, "4 KiB"),
    (64 * KIB, "64 KiB"),
    (MIB, "1 MiB"),
    (64 * MIB, "64 MiB"),
    (GIB, "1 GiB"),
    (64 * GIB, "64 GiB"),
    (TIB, "1 TiB"),
    (64 * TIB, "64 TiB"),
)

# Keep swatches between one pixel and two grid blocks wide
_MIN_SWATCH = 1
_MAX_SWATCH = 256


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_bytes(size: float) -> str:
    """1536 -> "2 KiB". Rounds to the nearest whole unit."""
    for unit, name in _UNITS:
        if size >= unit:
            return f"{_round_half_up(size / unit)} {name}"
    return f"{_round_half_up(size)} bytes"


def alignment(address: int, address_bits: int = 48) -> int:
    """Largest power of two, at most half the address space, dividing ``address``."""
    align = 1 << (address_bits - 1)
    while align > 1 and address % align:
        align >>= 1
    return align


@dataclass(frozen=True)
class ScaleEntry:
    label: str
    bytes: int
    pixels: int
    side: float


@dataclass(frozen=True)
class ScaleKey:
    level: int
    min_addr: int
    max_addr: int
    bytes_per_pixel: int
    bytes_per_square: int
    entries: list[ScaleEntry] = field(default_factory=list)

    @property
    def span(self) -> int:
        return self.max_addr - self.min_addr


def scale_key(state: ZoomState, space: AddressSpace) -> ScaleKey:
    bpp = bytes_per_pixel(state, space)
    entries = []
    for size, label in SCALE_SIZES:
        pixels = size / bpp
        side = math.sqrt(pixels)
        if _MIN_SWATCH <= side <= _MAX_SWATCH:
            entries.append(ScaleEntry(label=label, bytes=size, pixels=_round_half_up(pixels), side=side))
    return ScaleKey(
        level=state.level,
        min_addr=state.min_addr,
        max_addr=state.max_addr,
        bytes_per_pixel=bpp,
        bytes_per_square=bpp * BLOCK_SIZE * BLOCK_SIZE,
        entries=entries,
    )
