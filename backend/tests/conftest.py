"""Shared test fixtures."""

from __future__ import annotations

import pytest

from hilbertmap.engine.address_space import IPV4, MEMORY, STACKED
from hilbertmap.engine.session import MapSession


# Sample range descriptions, one per input format

NATIVE_TEXT = """\
555555554000 55555555a000 /usr/bin/cat
7ffff7dd3000 7ffff7dfc000 libc.so.6
7ffffffde000 7ffffffff000 stack
"""

# /proc/<pid>/maps of a small process. Line 6 is the vsyscall page.
MAPS_TEXT = """\
555555554000-555555556000 r--p 00000000 08:01 1234 /usr/bin/cat
555555556000-55555555a000 r-xp 00002000 08:01 1234 /usr/bin/cat
7ffff7dd3000-7ffff7dfc000 r-xp 00000000 08:01 5678 /usr/lib/libc.so.6
7ffff7ff0000-7ffff7ff2000 rw-p 00000000 00:00 0
7ffffffde000-7ffffffff000 rw-p 00000000 00:00 0                          [stack]
ffffffffff600000-ffffffffff601000 --xp 00000000 00:00 0                  [vsyscall]
"""

# GeoIP2-style blocks CSV
CIDR_TEXT = """\
network,geoname_id,registered_country_geoname_id
1.0.0.0/24,2077456,2077456
1.0.1.0/24,1814991,1814991
10.0.0.0/8,,
"""

LOW = 1 << 44  # 16 TiB, one 8x8 cell at level 1 is 4 TiB


@pytest.fixture
def memory_space():
    return MEMORY


@pytest.fixture
def ipv4_space():
    return IPV4


@pytest.fixture
def stacked_space():
    return STACKED


@pytest.fixture
def session() -> MapSession:
    return MapSession()


@pytest.fixture
def maps_session() -> MapSession:
    s = MapSession()
    s.load_text(MAPS_TEXT)
    return s


@pytest.fixture
def maps_file(tmp_path):
    path = tmp_path / "maps.txt"
    path.write_text(MAPS_TEXT)
    return path
