"""PNG encoding for pixel buffers."""

from __future__ import annotations

import io
from pathlib import Path

import numpy as np
from PIL import Image

from hilbertmap.engine.rasterizer import PixelBuffer


def encode_png(buf: PixelBuffer) -> bytes:
    image = Image.fromarray(np.ascontiguousarray(buf, dtype=np.uint8))
    out = io.BytesIO()
    image.save(out, format="PNG")
    return out.getvalue()


def decode_png(data: bytes) -> PixelBuffer:
    return np.array(Image.open(io.BytesIO(data)).convert("RGBA"))


def write_png(buf: PixelBuffer, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encode_png(buf))
    return path
