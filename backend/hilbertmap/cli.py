"""
Hilbert Map command line.

Usage:
  hilbertmap render maps.txt -o map.png                  # full view
  hilbertmap render maps.txt -o map.png --zoom 512,512   # one zoom step
  hilbertmap render blocks.csv -o ipv4.png --preset ipv4 --grid
  hilbertmap serve --input maps.txt --port 8080          # HTTP API
"""

from __future__ import annotations

import argparse
import logging
import sys

from hilbertmap.engine.address_space import PRESETS, get_preset
from hilbertmap.engine.errors import InvalidArgument
from hilbertmap.engine.parser import InputFormat, ParseResult
from hilbertmap.engine.rasterizer import BLOCK_SIZE, draw_grid
from hilbertmap.engine.session import MapSession
from hilbertmap.utils.formatting import format_bytes, scale_key
from hilbertmap.utils.png import write_png

logger = logging.getLogger("hilbertmap.cli")


def _pixel(value: str) -> tuple[int, int]:
    try:
        x, y = value.split(",")
        return int(x), int(y)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected X,Y pixel coordinates, got {value!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hilbertmap",
        description="Render address ranges on a Hilbert curve map",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log progress to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="render an input file to PNG")
    render.add_argument("input", help="range description file")
    render.add_argument("-o", "--output", required=True, help="PNG file to write")
    render.add_argument("--preset", choices=sorted(PRESETS), default="memory")
    render.add_argument("--format", choices=[f.value for f in InputFormat], default=None)
    render.add_argument(
        "--zoom", type=_pixel, action="append", default=[], metavar="X,Y",
        help="zoom into the cell under this pixel (repeatable)",
    )
    render.add_argument("--grid", action="store_true", help="overlay the locality grid")

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8080)
    serve.add_argument("--input", default="", help="range description loaded at startup")
    serve.add_argument("--preset", choices=sorted(PRESETS), default=None)
    serve.add_argument("--format", choices=[f.value for f in InputFormat], default=None)

    return parser


def _load_input(session: MapSession, path: str, fmt: str | None) -> ParseResult | None:
    """Load ``path`` into ``session``; print the problem and return None if unusable."""
    try:
        result = session.load_path(path, fmt)
    except (OSError, UnicodeDecodeError) as e:
        print(f"error: cannot read {path}: {e}", file=sys.stderr)
        return None
    if result.accepted == 0:
        print(f"error: no usable ranges in {path} ({result.skipped} lines skipped)", file=sys.stderr)
        return None
    return result


def cmd_render(args: argparse.Namespace) -> int:
    session = MapSession(space=get_preset(args.preset))
    result = _load_input(session, args.input, args.format)
    if result is None:
        return 1

    for x, y in args.zoom:
        if session.zoom_in(x, y) is None:
            logger.warning("Zoom at (%d, %d) ignored at level %d", x, y, session.state.level)

    frame = session.frame()
    if args.grid:
        frame = draw_grid(frame, session.grid(BLOCK_SIZE))
    path = write_png(frame, args.output)

    key = scale_key(session.state, session.space)
    print(
        f"{path}: {result.accepted} ranges, level {key.level}, "
        f"{key.min_addr:#x}-{key.max_addr:#x}, 1 pixel = {format_bytes(key.bytes_per_pixel)}"
    )
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from hilbertmap.config import settings
    from hilbertmap.dependencies import set_session

    if args.preset:
        settings.hilbertmap_address_space = args.preset
    input_file = args.input or settings.hilbertmap_input_file
    if input_file:
        session = MapSession(space=get_preset(settings.hilbertmap_address_space))
        fmt = args.format or settings.hilbertmap_input_format or None
        if _load_input(session, input_file, fmt) is None:
            return 1
        set_session(session)
        # Already in the shared session; the app factory must not load it again
        settings.hilbertmap_input_file = ""

    from hilbertmap.main import app

    print(f"Memory map server running at http://{args.host}:{args.port}/api/map/render.png")
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    try:
        if args.command == "render":
            return cmd_render(args)
        return cmd_serve(args)
    except InvalidArgument as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
