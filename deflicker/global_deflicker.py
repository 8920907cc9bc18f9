"""Whole-sequence deflicker front end: runs a worker and tracks frame luminance."""

from __future__ import annotations

import enum
from typing import Callable

import numpy as np

from deflicker.linear_bm import SearchMethod, deflicker_linear_bm
from deflicker.linear_ffmpeg import FactorType, deflicker_linear_ffmpeg
from deflicker.linear_lzy import Eigenvalue, deflicker_linear_lzy
from deflicker.sequence import SequenceBuffer

HIST_BINS = 65536

Listener = Callable[[], None]


class GlobalMethod(enum.Enum):
    """Deflicker algorithm applied to the whole sequence."""

    LINEAR_LZY = enum.auto()
    LINEAR_FFMPEG = enum.auto()
    LINEAR_BLOCK_MATCH = enum.auto()


def _luma(frame: np.ndarray) -> np.ndarray:
    return frame[..., 0] if frame.ndim == 3 else frame


def frame_luminance(frame: np.ndarray) -> float:
    """Mean value of the first channel of ``frame``."""
    luma = _luma(frame).astype(np.float64)
    return float(luma.sum() / luma.size)


def luminance_histogram(frame: np.ndarray) -> list[dict[str, object]]:
    """Non-empty bins of the first channel as ``{"index": str, "value": int}`` entries.

    Counts are kept as 16-bit unsigned values, so they wrap past 65535.
    """
    values = np.clip(_luma(frame).astype(np.int64).ravel(), 0, HIST_BINS - 1)
    counts = np.bincount(values, minlength=HIST_BINS).astype(np.uint16)
    return [
        {"index": str(level), "value": int(count)}
        for level, count in enumerate(counts)
        if count != 0
    ]


def _measure(buffer: SequenceBuffer) -> list[float]:
    """Walk the buffer with its cursor and collect the mean luminance of every frame."""
    pixels = 0.0
    result: list[float] = []
    for _ in range(len(buffer)):
        frame = buffer.read()
        if frame is None:
            raise IndexError(f"cursor {buffer.index} lies outside the sequence")
        if pixels == 0:
            pixels = float(frame.shape[0] * frame.shape[1])
        result.append(float(_luma(frame).astype(np.float64).sum()) / pixels)
        buffer.next()
    buffer.index = 0
    return result


class GlobalDeflicker:
    """Runs the selected deflicker algorithm from ``src`` into ``dst``."""

    def __init__(
        self,
        src: SequenceBuffer,
        dst: SequenceBuffer,
        method: GlobalMethod = GlobalMethod.LINEAR_BLOCK_MATCH,
    ) -> None:
        self.src = src
        self.dst = dst
        self.method = method
        self._src_luminance: list[float] = []
        self._dst_luminance: list[float] = []
        self._busy = False
        self.done_listeners: list[Listener] = []

    @property
    def busy(self) -> bool:
        """True while a deflicker pass is running."""
        return self._busy

    @property
    def src_luminance(self) -> list[float]:
        """Mean luminance of every source frame, as last measured."""
        return list(self._src_luminance)

    @property
    def dst_luminance(self) -> list[float]:
        """Mean luminance of every corrected frame, as last measured."""
        return list(self._dst_luminance)

    def process(self) -> None:
        """Run the selected algorithm, then measure the corrected frames."""
        if self._busy:
            raise RuntimeError("worker busy now")
        self._busy = True
        try:
            if self.method is GlobalMethod.LINEAR_LZY:
                deflicker_linear_lzy(
                    self.src, self.dst, Eigenvalue.AVERAGE_GRAYSCALE, self._src_luminance
                )
            elif self.method is GlobalMethod.LINEAR_FFMPEG:
                deflicker_linear_ffmpeg(
                    self.src, self.dst, FactorType.CUBIC_MEAN, self._src_luminance
                )
            else:
                deflicker_linear_bm(self.src, self.dst, SearchMethod.NTSS)
        finally:
            self._busy = False
        self.on_proc_done()

    def on_sequence_update(self) -> None:
        """Measure the source frames after a new sequence was loaded."""
        if len(self.src) <= 0:
            return
        self._src_luminance = _measure(self.src)

    def on_proc_done(self) -> None:
        """Measure the corrected frames and notify the listeners."""
        if len(self.dst) <= 0:
            return
        self._dst_luminance = _measure(self.dst)
        for listener in self.done_listeners:
            listener()