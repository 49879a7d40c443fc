"""Region index — labelled address ranges with point lookup and window filtering."""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace

from hilbertmap.engine.errors import InvalidArgument

RGBA = tuple[int, int, int, int]

DEFAULT_COLOR: RGBA = (128, 128, 128, 255)


@dataclass(frozen=True)
class AddressRange:
    """Half-open range ``[start, end)`` with a display label and color."""

    start: int
    end: int
    label: str = ""
    color: RGBA = DEFAULT_COLOR

    def __post_init__(self) -> None:
        if self.start < 0:
            raise InvalidArgument(f"Range start must be non-negative, got {self.start:#x}")
        if self.start >= self.end:
            raise InvalidArgument(f"Empty range {self.start:#x}-{self.end:#x}")

    @classmethod
    def clamped(
        cls,
        start: int,
        end: int,
        label: str,
        color: RGBA = DEFAULT_COLOR,
        *,
        ceiling: int,
    ) -> AddressRange | None:
        """Build a range clipped to ``ceiling``; None if nothing of it is left."""
        if start < 0 or start >= end or start >= ceiling:
            return None
        return cls(start=start, end=min(end, ceiling), label=label, color=color)

    @property
    def size(self) -> int:
        return self.end - self.start

    def contains(self, address: int) -> bool:
        return self.start <= address < self.end

    def overlaps(self, lo: int, hi: int) -> bool:
        return self.end > lo and self.start < hi


def synthetic_label(start: int) -> str:
    """Label for an unnamed range, from bits 32-47 of its start address."""
    return f"unnamed-{(start >> 32) & 0xFFFF:x}"


class RegionIndex:
    """Ranges sorted by start. Immutable; rebuild to change.

    Overlaps are kept. Lookups resolve them in favour of the earliest start
    (input order among equal starts).
    """

    def __init__(self, ranges: Iterable[AddressRange] = ()) -> None:
        named = [r if r.label else replace(r, label=synthetic_label(r.start)) for r in ranges]
        # list.sort is stable: equal starts keep input order
        named.sort(key=lambda r: r.start)
        self._ranges: tuple[AddressRange, ...] = tuple(named)
        self._starts: list[int] = [r.start for r in self._ranges]

    @classmethod
    def build(cls, ranges: Iterable[AddressRange]) -> RegionIndex:
        return cls(ranges)

    @property
    def ranges(self) -> tuple[AddressRange, ...]:
        return self._ranges

    def __len__(self) -> int:
        return len(self._ranges)

    def __iter__(self) -> Iterator[AddressRange]:
        return iter(self._ranges)

    def __getitem__(self, idx: int) -> AddressRange:
        return self._ranges[idx]

    def lookup(self, address: int | None) -> AddressRange | None:
        """First range in sorted order containing ``address``."""
        if address is None:
            return None
        # Only ranges starting at or before the address can contain it
        limit = bisect.bisect_right(self._starts, address)
        for r in self._ranges[:limit]:
            if address < r.end:
                return r
        return None

    def visible_ranges(self, lo: int, hi: int) -> list[AddressRange]:
        """Ranges intersecting ``[lo, hi)``, in sorted order."""
        limit = bisect.bisect_left(self._starts, hi)
        return [r for r in self._ranges[:limit] if r.end > lo]
