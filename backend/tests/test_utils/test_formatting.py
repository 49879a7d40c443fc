"""Tests for size formatting, alignment and the scale key."""

import pytest

from hilbertmap.engine.address_space import MEMORY
from hilbertmap.engine.zoom import root_state, zoom_in
from hilbertmap.utils.formatting import alignment, format_bytes, scale_key


@pytest.mark.parametrize("size, expected", [
    (0, "0 bytes"),
    (1023, "1023 bytes"),
    (1024, "1 KiB"),
    (1536, "2 KiB"),
    (1 << 28, "256 MiB"),
    (3 << 30, "3 GiB"),
    (1 << 40, "1 TiB"),
    (1 << 48, "256 TiB"),
])
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected


def test_alignment():
    assert alignment(0) == 1 << 47
    assert alignment(0x1000) == 0x1000
    assert alignment(0x7FFFF7DD3000) == 0x1000
    assert alignment(0x555555554001) == 1
    assert alignment(0, address_bits=32) == 1 << 31


def test_scale_key_root():
    key = scale_key(root_state(MEMORY), MEMORY)
    assert key.level == 0
    assert key.span == 1 << 48
    assert key.bytes_per_pixel == 1 << 28
    assert key.bytes_per_square == 1 << 42
    assert [e.label for e in key.entries] == ["1 GiB", "64 GiB", "1 TiB"]
    assert [e.pixels for e in key.entries] == [4, 256, 4096]
    assert [e.side for e in key.entries] == [2.0, 16.0, 64.0]


def test_scale_key_deepest_level():
    state = root_state(MEMORY)
    for _ in range(MEMORY.max_level):
        state = zoom_in(state, 0, 0, MEMORY)
    key = scale_key(state, MEMORY)
    assert key.bytes_per_pixel == 16
    assert [e.label for e in key.entries] == ["4 KiB", "64 KiB", "1 MiB"]
