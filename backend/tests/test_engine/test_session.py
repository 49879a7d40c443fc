"""Tests for MapSession: loading, transitions, highlight and single-flight."""

import numpy as np
import pytest

from hilbertmap.engine.address_space import IPV4
from hilbertmap.engine.errors import InvalidArgument
from hilbertmap.engine.regions import AddressRange
from hilbertmap.engine.session import MapSession, SessionBusy
from hilbertmap.engine.zoom import ZoomState, root_state
from tests.conftest import CIDR_TEXT, LOW


def test_load_resets_view(maps_session):
    maps_session.zoom_in(512, 512)
    assert maps_session.state.level == 1
    result = maps_session.load_text("1000 2000 only\n")
    assert result.accepted == 1
    assert maps_session.state == root_state(maps_session.space)
    assert len(maps_session.index) == 1


def test_load_path(session, maps_file):
    result = session.load_path(maps_file)
    assert result.accepted == 5
    assert len(session.index) == 5


def test_load_missing_path_keeps_index(maps_session, tmp_path):
    with pytest.raises(OSError):
        maps_session.load_path(tmp_path / "nope.txt")
    assert len(maps_session.index) == 5
    assert not maps_session.busy


def test_ipv4_session():
    s = MapSession(space=IPV4)
    result = s.load_text(CIDR_TEXT)
    assert result.accepted == 3
    assert s.frame().shape == (1024, 1024, 4)


def test_frame_is_cached(maps_session):
    assert maps_session.frame() is maps_session.frame()


def test_hit_test(session):
    session.load_regions([AddressRange(0, LOW, "low")])
    hit = session.hit_test(0, 0)
    assert hit.address == 0
    assert hit.region.label == "low"

    empty = session.hit_test(1023, 0)
    assert empty.address > LOW
    assert empty.region is None

    assert session.hit_test(2000, 0) is None


def test_hit_test_outside_zoomed_view(session):
    session.load_regions([AddressRange(0, 1 << 48, "all")])
    session.zoom_in(0, 0)
    assert session.hit_test(1023, 1023).region.label == "all"
    assert session.hit_test(2000, 0) is None
    assert session.hit_test(0, 1024) is None
    assert session.highlight(2000, 0) is None
    assert session.highlighted is None


def test_zoom_transition(session):
    session.load_regions([AddressRange(0, LOW, "low", (255, 0, 0, 255))])
    transition = session.zoom_in(0, 0)
    assert transition.before.level == 0
    assert transition.after.level == 1
    assert transition.cell == (0, 0)
    assert session.state is transition.after
    assert transition.before_frame.shape == (1024, 1024, 4)
    # One level-1 view is 4 TiB, all inside the region
    assert np.all(transition.after_frame == (255, 0, 0, 255))
    assert not np.array_equal(transition.before_frame, transition.after_frame)


def test_zoom_noop_returns_none(session):
    for _ in range(4):
        assert session.zoom_in(10, 10) is not None
    assert session.zoom_in(10, 10) is None
    assert session.zoom_in(5000, 0) is None
    assert session.state.level == 4


def test_reset(session):
    session.zoom_in(300, 300)
    assert session.reset() == root_state(session.space)
    assert session.frame().shape == (1024, 1024, 4)


def test_restore(session):
    session.zoom_in(300, 300)
    saved = session.state
    session.reset()
    assert session.restore(saved) == saved
    assert session.state == saved


def test_restore_rejects_invalid_state(session):
    with pytest.raises(InvalidArgument):
        session.restore(ZoomState(level=2, min_addr=0, max_addr=1 << 48))
    assert session.state == root_state(session.space)


def test_highlight_round_trip(session):
    session.load_regions([AddressRange(0, LOW, "low", (255, 0, 0, 255))])
    before = session.frame().copy()

    region = session.highlight(0, 0)
    assert region.label == "low"
    assert session.highlighted is region
    assert not np.array_equal(session.frame(), before)

    session.clear_highlight()
    assert session.highlighted is None
    np.testing.assert_array_equal(session.frame(), before)


def test_highlight_replaces_previous(session):
    session.load_regions([
        AddressRange(0, LOW, "low", (255, 0, 0, 255)),
        AddressRange(63 << 42, 1 << 48, "top", (0, 0, 255, 255)),
    ])
    before = session.frame().copy()
    session.highlight(0, 0)
    session.highlight(1023, 0)
    assert session.highlighted.label == "top"
    # Region "low" is back to unshaded
    np.testing.assert_array_equal(session.frame()[:256, :256], before[:256, :256])


def test_highlight_empty_space(session):
    assert session.highlight(0, 0) is None
    assert session.highlighted is None


def test_reset_at_root_removes_shading(session):
    session.load_regions([AddressRange(0, LOW, "low", (255, 0, 0, 255))])
    before = session.frame().copy()
    session.highlight(0, 0)
    session.reset()
    assert session.highlighted is None
    np.testing.assert_array_equal(session.frame(), before)


def test_zoom_clears_highlight(session):
    session.load_regions([AddressRange(0, LOW, "low")])
    session.highlight(0, 0)
    session.zoom_in(0, 0)
    assert session.highlighted is None


def test_busy_session_rejects_requests(session):
    session._lock.acquire()
    try:
        assert session.busy
        with pytest.raises(SessionBusy):
            session.zoom_in(0, 0)
        with pytest.raises(SessionBusy):
            session.load_text("1000 2000 x\n")
        with pytest.raises(SessionBusy):
            session.hit_test(0, 0)
    finally:
        session._lock.release()
    assert not session.busy
    assert session.state.level == 0
    assert session.zoom_in(0, 0) is not None
