"""Deterministic label colors.

Labels that share a base name (the part before an optional ``{rwx}`` suffix)
share a hue. The permission suffix only changes saturation, so related
mappings of the same file read as one color family.
"""

from __future__ import annotations

import colorsys
import re

from hilbertmap.engine.regions import RGBA

_PERMS_RE = re.compile(r"^(.*?)\s*\{([^}]+)\}$")

# Golden angle in degrees: successive hues land far apart
_HUE_STEP = 137.5

_SATURATION_PLAIN = 70
_SATURATION_BASE = 30
_SATURATION_BONUS = {"r": 10, "w": 20, "x": 40}


def split_label(label: str) -> tuple[str, str]:
    """Split ``"libc.so {r-x}"`` into ``("libc.so", "r-x")``."""
    match = _PERMS_RE.match(label)
    if match:
        return match.group(1), match.group(2)
    return label, ""


def saturation_for(permissions: str) -> int:
    if not permissions:
        return _SATURATION_PLAIN
    return _SATURATION_BASE + sum(
        bonus for flag, bonus in _SATURATION_BONUS.items() if flag in permissions
    )


def hsl_to_rgba(hue: float, saturation: int, lightness: int) -> RGBA:
    r, g, b = colorsys.hls_to_rgb(hue / 360.0, lightness / 100.0, saturation / 100.0)
    return (int(r * 255 + 0.5), int(g * 255 + 0.5), int(b * 255 + 0.5), 255)


class ColorAssigner:
    """Owned label -> color mapping. Grows with new labels, never evicts."""

    def __init__(self) -> None:
        self._colors: dict[str, RGBA] = {}
        self._hues: dict[str, float] = {}
        self._counter = 0

    def __len__(self) -> int:
        return len(self._colors)

    def hue_for(self, label: str) -> float | None:
        return self._hues.get(split_label(label)[0])

    def color_for(self, label: str) -> RGBA:
        cached = self._colors.get(label)
        if cached is not None:
            return cached

        base, permissions = split_label(label)
        hue = self._hues.get(base)
        if hue is None:
            hue = (self._counter * _HUE_STEP) % 360
            self._hues[base] = hue
            self._counter += 1

        lightness = 50 + (self._counter % 2) * 10
        color = hsl_to_rgba(hue, saturation_for(permissions), lightness)

        self._colors[label] = color
        self._colors.setdefault(base, color)
        return color
