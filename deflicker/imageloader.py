"""Loading an image sequence from a directory into a frame buffer."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

import imageio.v3 as iio
import numpy as np

from deflicker.sequence import SequenceBuffer

FILE_PREFIX = "file:///"
EXTENSIONS = (".dpx", ".png", ".jpg", ".tif")
_FULL_SCALE = 65535

Listener = Callable[[], None]


class ImageDecodeError(ValueError):
    """Raised when an image file cannot be decoded."""


def list_sequence(path: str | os.PathLike[str]) -> list[Path]:
    """Readable image files in a directory, sorted by name.

    A leading ``file:///`` is stripped from ``path``.
    """
    text = os.fspath(path)
    if FILE_PREFIX in text:
        text = text.replace(FILE_PREFIX, "")
    directory = Path(text)
    if not directory.is_dir():
        raise FileNotFoundError(f"image directory does not exist: {directory}")
    files = [
        entry
        for entry in directory.iterdir()
        if entry.is_file()
        and entry.suffix.lower() in EXTENSIONS
        and os.access(entry, os.R_OK)
    ]
    return sorted(files, key=lambda entry: entry.name)


def _to_rgb16(image: np.ndarray) -> np.ndarray:
    arr = np.asarray(image)
    if arr.ndim == 2:
        arr = np.stack([arr] * 3, axis=-1)
    elif arr.ndim == 3:
        channels = arr.shape[2]
        if channels >= 3:
            arr = arr[..., :3]
        else:
            arr = np.stack([arr[..., 0]] * 3, axis=-1)
    else:
        raise ImageDecodeError(f"unsupported image shape {arr.shape}")

    if arr.dtype == np.uint16:
        return np.ascontiguousarray(arr)
    if arr.dtype == np.uint8:
        return arr.astype(np.uint16) * 257
    if arr.dtype == np.bool_:
        return arr.astype(np.uint16) * _FULL_SCALE
    if np.issubdtype(arr.dtype, np.integer):
        return np.clip(arr, 0, _FULL_SCALE).astype(np.uint16)
    if np.issubdtype(arr.dtype, np.floating):
        scaled = np.clip(np.nan_to_num(arr.astype(np.float64)), 0.0, 1.0) * _FULL_SCALE
        return np.rint(scaled).astype(np.uint16)
    raise ImageDecodeError(f"unsupported pixel type {arr.dtype}")


def decode_image(path: str | os.PathLike[str]) -> np.ndarray:
    """Decode the first frame of an image file into a 16-bit RGB array."""
    try:
        image = iio.imread(path, index=0)
    except Exception as exc:
        raise ImageDecodeError(f"cannot decode {os.fspath(path)}: {exc}") from exc
    return _to_rgb16(image)


class ImageLoader:
    """Fills a buffer with the frames found in a directory."""

    def __init__(self, buffer: SequenceBuffer | None = None) -> None:
        self.buffer = buffer if buffer is not None else SequenceBuffer()
        self.sequence_listeners: list[Listener] = []

    def load(self, path: str | os.PathLike[str]) -> None:
        """Replace the buffer's frames with those of ``path`` and notify the listeners."""
        files = list_sequence(path)
        self.buffer.clear()
        for file in files:
            self.buffer.append(decode_image(file))
        for listener in self.sequence_listeners:
            listener()