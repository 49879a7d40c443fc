"""Range description parser — text in, sorted ``RegionIndex`` out.

Three line formats are understood:

* native:    ``<startHex> <endHex> <label ...>``
* maps:      ``<startHex>-<endHex> <perms> <offset> <dev> <inode> [<pathname>]``
             (``/proc/<pid>/maps``)
* cidr:      ``<network>[,<field>...]`` (e.g. GeoIP2 blocks CSV)

Bad lines are skipped and counted, never fatal.
"""

from __future__ import annotations

import enum
import ipaddress
import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path

from hilbertmap.engine.colors import ColorAssigner
from hilbertmap.engine.errors import InvalidArgument
from hilbertmap.engine.regions import AddressRange, RegionIndex, synthetic_label

logger = logging.getLogger(__name__)

_MAPS_LINE_RE = re.compile(
    r"^([0-9a-fA-F]+)-([0-9a-fA-F]+)\s+(\S+)\s+(\S+)\s+(\S+)\s+(\S+)(?:\s+(.*))?"
)
_MAPS_RANGE_RE = re.compile(r"^[0-9a-fA-F]+-[0-9a-fA-F]+$")
_MAPS_SKIP_MARKER = "[vsyscall]"


class InputFormat(str, enum.Enum):
    NATIVE = "native"
    MAPS = "maps"
    CIDR = "cidr"


@dataclass
class ParseResult:
    """Accepted ranges (sorted) plus bookkeeping about what was dropped."""

    index: RegionIndex
    format: InputFormat
    accepted: int = 0
    skipped: int = 0
    skipped_lines: list[int] = field(default_factory=list)


def detect_format(text: str) -> InputFormat:
    """Guess the format from the first meaningful line."""
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        first = stripped.split(None, 1)[0]
        if _MAPS_RANGE_RE.match(first):
            return InputFormat.MAPS
        head = first.split(",", 1)[0]
        if head == "network" or _is_network(head):
            return InputFormat.CIDR
        return InputFormat.NATIVE
    return InputFormat.NATIVE


def resolve_format(fmt: InputFormat | str) -> InputFormat:
    try:
        return InputFormat(fmt)
    except ValueError:
        raise InvalidArgument(
            f"Unknown input format {fmt!r} (expected one of {[f.value for f in InputFormat]})"
        ) from None


def _is_network(token: str) -> bool:
    if "/" not in token:
        return False
    try:
        ipaddress.ip_network(token, strict=False)
    except ValueError:
        return False
    return True


def parse_ranges(
    text: str,
    *,
    ceiling: int,
    colors: ColorAssigner,
    fmt: InputFormat | str | None = None,
) -> ParseResult:
    """Parse a range description.

    Args:
        text: Whole input, one range per line.
        ceiling: Exclusive top of the address space; ends are clamped to it.
        colors: Label color mapping, extended with every new label.
        fmt: Force a format instead of detecting it.
    """
    fmt = resolve_format(fmt) if fmt is not None else detect_format(text)
    parse_line = _LINE_PARSERS[fmt]

    ranges: list[AddressRange] = []
    skipped_lines: list[int] = []

    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            parsed = parse_line(line)
        except ValueError as e:
            logger.debug("line %d skipped: %s", lineno, e)
            skipped_lines.append(lineno)
            continue
        if parsed is None:
            continue

        start, end, label = parsed
        rng = AddressRange.clamped(start, end, label, ceiling=ceiling)
        if rng is None:
            logger.debug("line %d skipped: range %#x-%#x empty or beyond %#x", lineno, start, end, ceiling)
            skipped_lines.append(lineno)
            continue
        ranges.append(replace(rng, color=colors.color_for(rng.label)))

    result = ParseResult(
        index=RegionIndex.build(ranges),
        format=fmt,
        accepted=len(ranges),
        skipped=len(skipped_lines),
        skipped_lines=skipped_lines,
    )
    logger.info(
        "Parsed %d ranges (%s format), skipped %d lines",
        result.accepted, fmt.value, result.skipped,
    )
    return result


def load_file(
    path: str | Path,
    *,
    ceiling: int,
    colors: ColorAssigner,
    fmt: InputFormat | str | None = None,
) -> ParseResult:
    """Read and parse a range description file. I/O errors propagate."""
    text = Path(path).read_text(encoding="utf-8")
    return parse_ranges(text, ceiling=ceiling, colors=colors, fmt=fmt)


# ── Line parsers ──
# Each returns (start, end, label), None for lines to ignore silently, or
# raises ValueError for malformed lines.


def _parse_native(line: str) -> tuple[int, int, str] | None:
    parts = line.split()
    if len(parts) < 3:
        raise ValueError(f"expected '<start> <end> <label>', got {line.strip()!r}")
    return int(parts[0], 16), int(parts[1], 16), " ".join(parts[2:])


def _parse_maps(line: str) -> tuple[int, int, str] | None:
    if _MAPS_SKIP_MARKER in line:
        raise ValueError("vsyscall mapping")
    match = _MAPS_LINE_RE.match(line.strip())
    if not match:
        raise ValueError(f"not a maps line: {line.strip()!r}")

    start = int(match.group(1), 16)
    end = int(match.group(2), 16)
    perms = match.group(3)
    label = (match.group(7) or "").strip()
    if not label:
        label = synthetic_label(start)
    # r/w/x only, the private/shared flag is dropped
    return start, end, f"{label} {{{perms[:3]}}}"


def _parse_cidr(line: str) -> tuple[int, int, str] | None:
    stripped = line.strip()
    if stripped.startswith("#") or stripped.startswith("network,"):
        return None
    fields = [f.strip() for f in stripped.split(",")]
    network = ipaddress.ip_network(fields[0], strict=False)
    label = next((f for f in fields[1:] if f), fields[0])
    return int(network.network_address), int(network.broadcast_address) + 1, label


_LINE_PARSERS = {
    InputFormat.NATIVE: _parse_native,
    InputFormat.MAPS: _parse_maps,
    InputFormat.CIDR: _parse_cidr,
}
