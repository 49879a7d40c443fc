"""Tests for range description parsing."""

import logging

import pytest

from hilbertmap.engine.colors import ColorAssigner
from hilbertmap.engine.errors import InvalidArgument
from hilbertmap.engine.parser import InputFormat, detect_format, load_file, parse_ranges
from tests.conftest import CIDR_TEXT, MAPS_TEXT, NATIVE_TEXT

CEILING = 1 << 48


def _parse(text, fmt=None, ceiling=CEILING):
    return parse_ranges(text, ceiling=ceiling, colors=ColorAssigner(), fmt=fmt)


class TestDetectFormat:
    def test_maps(self):
        assert detect_format(MAPS_TEXT) == InputFormat.MAPS

    def test_native(self):
        assert detect_format(NATIVE_TEXT) == InputFormat.NATIVE

    def test_cidr(self):
        assert detect_format(CIDR_TEXT) == InputFormat.CIDR
        assert detect_format("# blocks\n10.0.0.0/8,x\n") == InputFormat.CIDR

    def test_empty_defaults_to_native(self):
        assert detect_format("") == InputFormat.NATIVE
        assert detect_format("\n\n# only comments\n") == InputFormat.NATIVE


class TestMaps:
    def test_accepts_and_skips(self):
        result = _parse(MAPS_TEXT)
        assert result.format == InputFormat.MAPS
        assert result.accepted == 5
        assert result.skipped == 1
        assert result.skipped_lines == [6]
        assert len(result.index) == 5

    def test_labels_carry_permissions(self):
        labels = [r.label for r in _parse(MAPS_TEXT).index]
        assert labels == [
            "/usr/bin/cat {r--}",
            "/usr/bin/cat {r-x}",
            "/usr/lib/libc.so.6 {r-x}",
            "unnamed-7fff {rw-}",
            "[stack] {rw-}",
        ]

    def test_bounds(self):
        first = _parse(MAPS_TEXT).index[0]
        assert first.start == 0x555555554000
        assert first.end == 0x555555556000

    def test_same_file_shares_hue(self):
        colors = ColorAssigner()
        parse_ranges(MAPS_TEXT, ceiling=CEILING, colors=colors)
        assert colors.hue_for("/usr/bin/cat {r--}") == colors.hue_for("/usr/bin/cat {r-x}")
        assert colors.hue_for("/usr/bin/cat {r--}") != colors.hue_for("[stack] {rw-}")

    def test_region_colors_come_from_assigner(self):
        colors = ColorAssigner()
        result = parse_ranges(MAPS_TEXT, ceiling=CEILING, colors=colors)
        for rng in result.index:
            assert rng.color == colors.color_for(rng.label)

    def test_garbage_line_skipped(self):
        result = _parse(MAPS_TEXT + "this is not a mapping\n", fmt="maps")
        assert result.skipped == 2
        assert result.skipped_lines == [6, 7]


class TestNative:
    def test_parse(self):
        result = _parse(NATIVE_TEXT)
        assert result.format == InputFormat.NATIVE
        assert result.accepted == 3
        assert [r.label for r in result.index] == ["/usr/bin/cat", "libc.so.6", "stack"]

    def test_label_may_contain_spaces(self):
        result = _parse("1000 2000 my big region\n")
        assert result.index[0].label == "my big region"

    def test_bad_lines_counted(self):
        text = "1000 2000 ok\nzzzz 3000 bad-hex\n4000 5000\n6000 5000 backwards\n"
        result = _parse(text)
        assert result.accepted == 1
        assert result.skipped_lines == [2, 3, 4]

    def test_end_clamped_and_beyond_ceiling_dropped(self):
        text = "fffffffff000 2000000000000000 top\n1000000000000 1000000001000 above\n"
        result = _parse(text)
        assert result.accepted == 1
        assert result.index[0].end == CEILING
        assert result.skipped_lines == [2]

    def test_output_sorted(self):
        result = _parse("3000 4000 c\n1000 2000 a\n2000 3000 b\n")
        assert [r.label for r in result.index] == ["a", "b", "c"]

    def test_skips_logged(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="hilbertmap.engine.parser"):
            _parse("1000 2000 ok\nnope\n")
        assert "line 2 skipped" in caplog.text
        assert "skipped 1 lines" in caplog.text


class TestCidr:
    def test_parse(self):
        result = _parse(CIDR_TEXT, ceiling=1 << 32)
        assert result.format == InputFormat.CIDR
        assert result.accepted == 3
        assert result.skipped == 0
        first = result.index[0]
        assert first.start == 0x01000000
        assert first.end == 0x01000100
        assert first.label == "2077456"

    def test_empty_fields_fall_back_to_network(self):
        result = _parse(CIDR_TEXT, ceiling=1 << 32)
        assert result.index[-1].label == "10.0.0.0/8"
        assert result.index[-1].size == 1 << 24

    def test_bad_network_skipped(self):
        result = _parse("network,id\n300.0.0.0/8,1\n", fmt=InputFormat.CIDR, ceiling=1 << 32)
        assert result.accepted == 0
        assert result.skipped_lines == [2]


def test_unknown_format():
    with pytest.raises(InvalidArgument):
        _parse(NATIVE_TEXT, fmt="xml")


def test_load_file(maps_file):
    result = load_file(maps_file, ceiling=CEILING, colors=ColorAssigner())
    assert result.accepted == 5


def test_load_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_file(tmp_path / "missing.txt", ceiling=CEILING, colors=ColorAssigner())
