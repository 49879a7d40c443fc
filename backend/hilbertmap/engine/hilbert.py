"""Hilbert curve codec — 1-D curve index <-> 2-D grid coordinates.

The grid has side ``2**order``. Index 0 sits at (0, 0) and the last index at
(side - 1, 0). Consecutive indices are always grid-adjacent.

Both a scalar form (exact for arbitrarily large orders, Python ints) and a
numpy form (int64 arrays, orders up to 31) are provided. The rasterizer uses
the array form to place a whole region's samples in one pass.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

from hilbertmap.engine.errors import InvalidArgument

# int64 holds indices up to 4**31 - 1
MAX_ARRAY_ORDER = 31


def _check_order(order: int) -> int:
    if isinstance(order, bool) or not isinstance(order, (int, np.integer)):
        raise InvalidArgument(f"Curve order must be an integer, got {order!r}")
    if order < 1:
        raise InvalidArgument(f"Curve order must be >= 1, got {order}")
    return int(order)


def index_to_xy(index: int, order: int) -> tuple[int, int]:
    """Decode a Hilbert index into (x, y) on a ``2**order`` grid."""
    order = _check_order(order)
    if index < 0 or index >= 1 << (2 * order):
        raise InvalidArgument(f"Index {index} outside curve of order {order}")

    n = 1 << order
    x = y = 0
    t = int(index)
    s = 1
    while s < n:
        rx = 1 & (t >> 1)
        ry = 1 & (t ^ rx)
        if ry == 0:
            if rx == 1:
                x = s - 1 - x
                y = s - 1 - y
            x, y = y, x
        x += s * rx
        y += s * ry
        t >>= 2
        s <<= 1
    return x, y


def xy_to_index(x: int, y: int, order: int) -> int:
    """Encode grid coordinates (x, y) on a ``2**order`` grid as a Hilbert index."""
    order = _check_order(order)
    n = 1 << order
    if not (0 <= x < n and 0 <= y < n):
        raise InvalidArgument(f"Coordinate ({x}, {y}) outside {n}x{n} grid")

    x = int(x)
    y = int(y)
    d = 0
    s = n >> 1
    while s > 0:
        rx = 1 if (x & s) > 0 else 0
        ry = 1 if (y & s) > 0 else 0
        d += s * s * ((3 * rx) ^ ry)
        # Rotate
        if ry == 0:
            if rx == 1:
                x = n - 1 - x
                y = n - 1 - y
            x, y = y, x
        s >>= 1
    return d


def index_to_xy_array(
    indices: ArrayLike, order: int
) -> tuple[NDArray[np.int64], NDArray[np.int64]]:
    """Vectorized :func:`index_to_xy`. Returns (xs, ys) int64 arrays."""
    order = _check_order(order)
    if order > MAX_ARRAY_ORDER:
        raise InvalidArgument(f"Array codec supports order <= {MAX_ARRAY_ORDER}, got {order}")

    t = np.asarray(indices, dtype=np.int64).copy()
    if t.size and (t.min() < 0 or t.max() >= 1 << (2 * order)):
        raise InvalidArgument(f"Indices outside curve of order {order}")

    x = np.zeros_like(t)
    y = np.zeros_like(t)
    s = 1
    n = 1 << order
    while s < n:
        rx = 1 & (t >> 1)
        ry = 1 & (t ^ rx)
        flip = (ry == 0) & (rx == 1)
        x = np.where(flip, s - 1 - x, x)
        y = np.where(flip, s - 1 - y, y)
        swap = ry == 0
        x, y = np.where(swap, y, x), np.where(swap, x, y)
        x += s * rx
        y += s * ry
        t >>= 2
        s <<= 1
    return x, y


def xy_to_index_array(xs: ArrayLike, ys: ArrayLike, order: int) -> NDArray[np.int64]:
    """Vectorized :func:`xy_to_index`. Coordinates must lie inside the grid."""
    order = _check_order(order)
    if order > MAX_ARRAY_ORDER:
        raise InvalidArgument(f"Array codec supports order <= {MAX_ARRAY_ORDER}, got {order}")

    n = 1 << order
    x = np.asarray(xs, dtype=np.int64).copy()
    y = np.asarray(ys, dtype=np.int64).copy()
    if x.shape != y.shape:
        raise InvalidArgument(f"Coordinate arrays differ in shape: {x.shape} vs {y.shape}")
    if x.size and (x.min() < 0 or x.max() >= n or y.min() < 0 or y.max() >= n):
        raise InvalidArgument(f"Coordinates outside {n}x{n} grid")

    d = np.zeros_like(x)
    s = n >> 1
    while s > 0:
        rx = ((x & s) > 0).astype(np.int64)
        ry = ((y & s) > 0).astype(np.int64)
        d += s * s * ((3 * rx) ^ ry)
        flip = (ry == 0) & (rx == 1)
        x = np.where(flip, n - 1 - x, x)
        y = np.where(flip, n - 1 - y, y)
        swap = ry == 0
        x, y = np.where(swap, y, x), np.where(swap, x, y)
        s >>= 1
    return d
