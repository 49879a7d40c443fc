"""MapSession — owner of the current view, region index and rendered frame.

All mutating operations go through a single-flight guard. A request that
arrives while another is still running is rejected with ``SessionBusy``
rather than queued. The view state is only ever replaced whole.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from hilbertmap.engine.address_space import MEMORY, AddressSpace
from hilbertmap.engine.colors import ColorAssigner
from hilbertmap.engine.parser import InputFormat, ParseResult, load_file, parse_ranges
from hilbertmap.engine.rasterizer import (
    BLOCK_SIZE,
    GridSegment,
    PixelBuffer,
    apply_shading,
    grid_segments,
    remove_shading,
    render,
)
from hilbertmap.engine.regions import AddressRange, RegionIndex
from hilbertmap.engine.zoom import (
    ZoomState,
    pixel_to_address,
    reset,
    root_state,
    validate_state,
    zoom_cell,
    zoom_in,
)

logger = logging.getLogger(__name__)


class SessionBusy(RuntimeError):
    """Another operation on the session is still in flight."""


@dataclass(frozen=True)
class HitResult:
    address: int
    region: AddressRange | None


@dataclass(frozen=True)
class ZoomTransition:
    """Everything a renderer needs to animate one zoom step."""

    before: ZoomState
    after: ZoomState
    cell: tuple[int, int]
    before_frame: PixelBuffer
    after_frame: PixelBuffer


class MapSession:
    """Single-user map session."""

    def __init__(
        self,
        space: AddressSpace = MEMORY,
        colors: ColorAssigner | None = None,
    ) -> None:
        self.space = space
        self.colors = colors or ColorAssigner()
        self._index = RegionIndex()
        self._state = root_state(space)
        self._frame: PixelBuffer | None = None
        self._highlight: tuple[AddressRange, PixelBuffer] | None = None
        self._lock = threading.Lock()

    @contextmanager
    def _single_flight(self, op: str) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            logger.warning("Rejected %s: another operation is in flight", op)
            raise SessionBusy(f"Cannot {op}: another operation is in flight")
        try:
            yield
        finally:
            self._lock.release()

    @property
    def state(self) -> ZoomState:
        return self._state

    @property
    def index(self) -> RegionIndex:
        return self._index

    @property
    def highlighted(self) -> AddressRange | None:
        return self._highlight[0] if self._highlight else None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    # ── Data ──

    def load_text(self, text: str, fmt: InputFormat | str | None = None) -> ParseResult:
        """Replace the region index wholesale and return to the root view."""
        with self._single_flight("load"):
            result = parse_ranges(text, ceiling=self.space.ceiling, colors=self.colors, fmt=fmt)
            self._replace_index(result.index)
            return result

    def load_path(self, path, fmt: InputFormat | str | None = None) -> ParseResult:
        with self._single_flight("load"):
            result = load_file(path, ceiling=self.space.ceiling, colors=self.colors, fmt=fmt)
            self._replace_index(result.index)
            return result

    def load_regions(self, ranges: Iterable[AddressRange]) -> RegionIndex:
        with self._single_flight("load"):
            self._replace_index(RegionIndex.build(ranges))
            return self._index

    def _replace_index(self, index: RegionIndex) -> None:
        self._index = index
        self._state = root_state(self.space)
        self._frame = None
        self._highlight = None

    # ── Frames ──

    def frame(self) -> PixelBuffer:
        """Current frame, rendered on demand. Includes any highlight."""
        with self._single_flight("render"):
            return self._current_frame()

    def _current_frame(self) -> PixelBuffer:
        if self._frame is None:
            t0 = time.perf_counter()
            self._frame = render(self._index, self._state, self.space)
            logger.debug("Frame rendered in %.1fms", (time.perf_counter() - t0) * 1000)
        return self._frame

    def grid(self, block: int = BLOCK_SIZE) -> list[GridSegment]:
        return grid_segments(self._state, self.space, block)

    # ── Queries ──

    def hit_test(self, px: int, py: int) -> HitResult | None:
        """Address and region under pixel (px, py); None off the curve."""
        with self._single_flight("hit test"):
            address = pixel_to_address(px, py, self._state, self.space)
            if address is None:
                return None
            return HitResult(address=address, region=self._index.lookup(address))

    # ── Transitions ──

    def zoom_in(self, px: int, py: int) -> ZoomTransition | None:
        """Zoom into the cell under (px, py). None when the zoom is a no-op."""
        with self._single_flight("zoom"):
            before = self._state
            after = zoom_in(before, px, py, self.space)
            if after is before:
                return None

            self._clear_highlight()
            before_frame = self._current_frame().copy()
            after_frame = render(self._index, after, self.space)

            self._state = after
            self._frame = after_frame
            logger.info(
                "Zoomed to level %d: %#x-%#x", after.level, after.min_addr, after.max_addr
            )
            return ZoomTransition(
                before=before,
                after=after,
                cell=zoom_cell(px, py, self.space),
                before_frame=before_frame,
                after_frame=after_frame.copy(),
            )

    def reset(self) -> ZoomState:
        with self._single_flight("reset"):
            self._clear_highlight()
            if self._state != root_state(self.space):
                self._state = reset(self.space)
                self._frame = None
            return self._state

    def restore(self, state: ZoomState) -> ZoomState:
        """Jump straight to a previously serialized view."""
        with self._single_flight("restore"):
            validate_state(state, self.space)
            if state != self._state:
                self._state = state
                self._frame = None
                self._highlight = None
            return self._state

    # ── Highlight ──

    def highlight(self, px: int, py: int) -> AddressRange | None:
        """Shade the region under (px, py), replacing any earlier highlight."""
        with self._single_flight("highlight"):
            self._clear_highlight()
            address = pixel_to_address(px, py, self._state, self.space)
            region = self._index.lookup(address)
            if region is None:
                return None
            frame = self._current_frame()
            snapshot = apply_shading(frame, region, self._state, self.space)
            self._highlight = (region, snapshot)
            return region

    def clear_highlight(self) -> None:
        with self._single_flight("clear highlight"):
            self._clear_highlight()

    def _clear_highlight(self) -> None:
        if self._highlight is None:
            return
        _, snapshot = self._highlight
        if self._frame is not None:
            remove_shading(self._frame, snapshot)
        self._highlight = None
