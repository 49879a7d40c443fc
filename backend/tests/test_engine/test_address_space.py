"""Tests for address space geometry and presets."""

import numpy as np
import pytest

from hilbertmap.engine.address_space import (
    IPV4,
    MEMORY,
    STACKED,
    AddressSpace,
    CurveTile,
    get_preset,
)
from hilbertmap.engine.errors import InvalidArgument


class TestMemoryPreset:
    def test_constants(self):
        assert MEMORY.ceiling == 1 << 48
        assert MEMORY.canonical_side == 1 << 24
        assert MEMORY.base_scale == 16384
        assert MEMORY.bytes_per_unit == 1

    def test_levels(self):
        assert MEMORY.viewport_size(0) == (1024, 1024)
        assert MEMORY.viewport_size(4) == (1024, 1024)
        assert MEMORY.level_span(0) == 1 << 48
        assert MEMORY.level_span(1) == 1 << 42
        assert MEMORY.level_span(4) == 1 << 24
        assert MEMORY.units_per_pixel(0) == 16384
        assert MEMORY.units_per_pixel(4) == 4

    def test_level_out_of_range(self):
        with pytest.raises(InvalidArgument):
            MEMORY.units_per_pixel(5)
        with pytest.raises(InvalidArgument):
            MEMORY.level_span(-1)

    def test_curve_ends(self):
        assert MEMORY.address_to_canonical(0) == (0, 0)
        assert MEMORY.address_to_canonical(MEMORY.ceiling - 1) == ((1 << 24) - 1, 0)
        assert MEMORY.address_to_canonical(MEMORY.ceiling) is None
        assert MEMORY.address_to_canonical(-1) is None

    def test_canonical_round_trip(self):
        for address in (0, 0x1000, 0x555555554000, 0x7FFFFFFFE000):
            x, y = MEMORY.address_to_canonical(address)
            assert MEMORY.canonical_to_address(x, y) == address

    def test_off_tile(self):
        assert MEMORY.canonical_to_address(1 << 24, 0) is None
        assert MEMORY.canonical_to_address(0, -1) is None

    def test_vectorized_matches_scalar(self):
        addrs = np.array([0, 0x1000, 0x555555554000, (1 << 48) - 1], dtype=np.int64)
        xs, ys = MEMORY.addresses_to_canonical(addrs)
        for a, x, y in zip(addrs.tolist(), xs.tolist(), ys.tolist()):
            assert MEMORY.address_to_canonical(a) == (x, y)
        back, valid = MEMORY.canonical_to_addresses(xs, ys)
        assert valid.all()
        np.testing.assert_array_equal(back, addrs)

    def test_vectorized_marks_off_tile(self):
        back, valid = MEMORY.canonical_to_addresses([0, 1 << 24], [0, 0])
        assert valid.tolist() == [True, False]
        assert back[1] == -1

    def test_vectorized_rejects_out_of_space(self):
        with pytest.raises(InvalidArgument):
            MEMORY.addresses_to_canonical([1 << 48])


class TestOtherPresets:
    def test_ipv4(self):
        assert IPV4.ceiling == 1 << 32
        assert IPV4.base_scale == 64
        assert IPV4.bytes_per_unit == 1
        assert IPV4.units_per_pixel(IPV4.max_level) == 1

    def test_stacked_viewport(self):
        assert STACKED.viewport_size(0) == (1024, 2048)
        assert STACKED.viewport_size(1) == (1024, 1024)
        assert STACKED.tile_range == 1 << 48
        assert STACKED.level_span(1) == 1 << 42

    def test_stacked_second_tile_is_mirrored(self):
        side = 1 << 24
        # First address of the second tile starts at the far (bottom) edge
        assert STACKED.address_to_canonical(1 << 48) == (0, 2 * side - 1)
        assert STACKED.address_to_canonical((1 << 49) - 1) == (side - 1, 2 * side - 1)
        assert STACKED.canonical_to_address(0, 2 * side - 1) == 1 << 48

    def test_get_preset(self):
        assert get_preset("memory") is MEMORY
        assert get_preset("stacked") is STACKED
        with pytest.raises(InvalidArgument):
            get_preset("ipv6")


class TestValidation:
    def test_resolution_power_of_two(self):
        with pytest.raises(InvalidArgument):
            AddressSpace(resolution=1000)

    def test_too_deep(self):
        with pytest.raises(InvalidArgument):
            AddressSpace(max_level=5)

    def test_duplicate_tiles(self):
        with pytest.raises(InvalidArgument):
            AddressSpace(address_bits=49, tiles=(CurveTile(), CurveTile()))

    def test_misaligned_tile(self):
        with pytest.raises(InvalidArgument):
            AddressSpace(address_bits=49, tiles=(CurveTile(), CurveTile(origin_x=5)))

    def test_tile_range_too_small(self):
        with pytest.raises(InvalidArgument):
            AddressSpace(address_bits=40)

    def test_no_tiles(self):
        with pytest.raises(InvalidArgument):
            AddressSpace(tiles=())
