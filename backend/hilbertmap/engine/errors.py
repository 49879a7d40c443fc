"""Engine exceptions."""

from __future__ import annotations


class InvalidArgument(ValueError):
    """Raised for arguments that are malformed or outside the allowed domain.

    Out-of-bounds lookups (clicking outside the map, hovering empty space) are
    not errors and return ``None`` instead.
    """
