"""Command line entry point: load a sequence, deflicker it, report luminance."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

import imageio.v3 as iio
import numpy as np

from deflicker.global_deflicker import GlobalDeflicker, GlobalMethod
from deflicker.imageloader import ImageDecodeError, ImageLoader
from deflicker.sequence import SequenceBuffer

METHODS = {
    "lzy": GlobalMethod.LINEAR_LZY,
    "ffmpeg": GlobalMethod.LINEAR_FFMPEG,
    "bm": GlobalMethod.LINEAR_BLOCK_MATCH,
}


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deflicker",
        description="Remove brightness flicker from an image sequence.",
    )
    parser.add_argument("input", help="directory holding the image sequence")
    parser.add_argument(
        "--method",
        choices=sorted(METHODS),
        default="bm",
        help="deflicker algorithm (default: bm)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="directory to write 8-bit PNG previews of the corrected frames",
    )
    return parser


def _write_frames(directory: Path, buffer: SequenceBuffer) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for number, frame in enumerate(buffer):
        preview = np.rint(frame.astype(np.float64) / 257).astype(np.uint8)
        iio.imwrite(directory / f"{number:05d}.png", preview)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command and return its exit status."""
    args = _parser().parse_args(argv)
    src = SequenceBuffer()
    dst = SequenceBuffer()
    loader = ImageLoader(src)
    deflicker = GlobalDeflicker(src, dst, METHODS[args.method])
    loader.sequence_listeners.append(deflicker.on_sequence_update)

    try:
        loader.load(args.input)
        if not len(src):
            print(f"error: no frames found in {args.input}", file=sys.stderr)
            return 1
        deflicker.process()
    except (OSError, ImageDecodeError, ValueError, IndexError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print("frame\tsource\tresult")
    for number, (before, after) in enumerate(
        zip(deflicker.src_luminance, deflicker.dst_luminance)
    ):
        print(f"{number}\t{before:.3f}\t{after:.3f}")

    if args.output is not None:
        _write_frames(args.output, dst)
    return 0


if __name__ == "__main__":
    sys.exit(main())