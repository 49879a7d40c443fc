"""Hilbert curve memory map — renders large ordered address spaces as explorable bitmaps."""

__version__ = "0.1.0"
