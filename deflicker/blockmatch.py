"""Block statistics and motion search used by the deflicker workers."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from deflicker.sequence import SequenceBuffer

HIST_BINS = 65535


class BlockMatchMethod(enum.Enum):
    """Distortion measure used to compare two blocks."""

    SAD = enum.auto()
    MAD = enum.auto()
    MSE = enum.auto()
    PSNR = enum.auto()
    SSIM = enum.auto()


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle in pixel coordinates."""

    x: int
    y: int
    width: int
    height: int

    def shifted(self, dx: int, dy: int) -> "Rect":
        """Return the same rectangle moved by ``(dx, dy)``."""
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    @property
    def br(self) -> tuple[int, int]:
        """Bottom-right corner, exclusive."""
        return self.x + self.width, self.y + self.height

    def crop(self, mat: np.ndarray) -> np.ndarray:
        """Return a view of ``mat`` covered by this rectangle."""
        return mat[self.y:self.y + self.height, self.x:self.x + self.width]


def _luma(mat: np.ndarray) -> np.ndarray:
    """First channel of a frame, as used for grey-level measurements."""
    return mat[..., 0] if mat.ndim == 3 else mat


def hist_gray(buffer: SequenceBuffer) -> list[int]:
    """Histogram of the first channel of the current frame.

    Counts are kept as 16-bit unsigned values; the top grey level 65535
    falls outside the bins and is not counted.
    """
    if len(buffer) <= 0:
        return []
    frame = buffer.read()
    if frame is None:
        return []
    values = _luma(frame).astype(np.int64).ravel()
    values = values[values < HIST_BINS]
    counts = np.bincount(values, minlength=HIST_BINS)[:HIST_BINS]
    return [int(c) for c in counts.astype(np.uint16)]


def _valid(rect: Rect, ref: np.ndarray) -> bool:
    if rect.x < 0 or rect.y < 0:
        return False
    right, bottom = rect.br
    return not (right > ref.shape[1] - 1 or bottom > ref.shape[0] - 1)


def new_three_step_search(
    target: np.ndarray,
    ref: np.ndarray,
    blocks: Iterable[Rect],
    mode: BlockMatchMethod,
) -> list[tuple[int, int]]:
    """Find a motion vector for every block of ``ref`` within ``target``."""
    vectors: list[tuple[int, int]] = []
    for rect in blocks:
        ref_block = rect.crop(ref)
        best: float | None = None
        vx, vy = 0, 0

        def probe(base: Rect, ox: int, oy: int) -> bool:
            nonlocal best
            candidate = base.shifted(ox, oy)
            if not _valid(candidate, ref):
                return False
            value = block_match_value(candidate.crop(target), ref_block, mode)
            if best is None or value < best:
                best = value
                return True
            return False

        for ox in range(-1, 1):
            for oy in range(-1, 1):
                if probe(rect, ox, oy):
                    vx, vy = ox, oy

        for ox in range(-4, 4, 4):
            for oy in range(-4, 4, 4):
                if ox == 0 and oy == 0:
                    continue
                if probe(rect, ox, oy):
                    vx, vy = ox, oy

        if vx == 0 and vy == 0:
            vectors.append((vx, vy))
            continue

        if abs(vx) == 1 or abs(vy) == 1:
            centre = rect.shifted(vx, vy)
            for ox in range(-1, 1):
                for oy in range(-1, 1):
                    if ox == 0 and oy == 0:
                        continue
                    if probe(centre, ox, oy):
                        vx, vy = vx + ox, vy + oy
            vectors.append((vx, vy))
            continue

        centre = rect.shifted(vx, vy)
        for ox in range(-2, 2, 2):
            for oy in range(-2, 2, 2):
                if ox == 0 and oy == 0:
                    continue
                if probe(centre, ox, oy):
                    vx, vy = vx + ox, vy + oy
        centre = centre.shifted(vx, vy)
        for ox in range(-1, 1):
            for oy in range(-1, 1):
                if ox == 0 and oy == 0:
                    continue
                if probe(centre, ox, oy):
                    vx, vy = vx + ox, vy + oy
        vectors.append((vx, vy))
    return vectors


def block_match_value(target: np.ndarray, ref: np.ndarray, mode: BlockMatchMethod) -> float:
    """Distortion between two blocks; measures without an implementation give 0."""
    if mode is BlockMatchMethod.MSE:
        return mse(target, ref)
    if mode is BlockMatchMethod.MAD:
        return mad(target, ref)
    return 0.0


def _diff(target: np.ndarray, ref: np.ndarray) -> np.ndarray:
    return _luma(target).astype(np.int64) - _luma(ref).astype(np.int64)


def mse(target: np.ndarray, ref: np.ndarray) -> float:
    """Mean squared error over the first channel."""
    diff = _diff(target, ref)
    return float(np.sum(diff.astype(np.float64) ** 2) / diff.size)


def mad(target: np.ndarray, ref: np.ndarray) -> float:
    """Mean absolute difference over the first channel."""
    diff = _diff(target, ref)
    return float(np.sum(np.abs(diff)) / diff.size)


def matrix_expectation(mat: np.ndarray) -> np.ndarray:
    """Divide every element by the number of pixels, keeping the element type."""
    elements = mat.shape[0] * mat.shape[1]
    quotient = mat.astype(np.float64) / elements
    if np.issubdtype(mat.dtype, np.integer):
        info = np.iinfo(mat.dtype)
        return np.clip(np.rint(quotient), info.min, info.max).astype(mat.dtype)
    return quotient.astype(mat.dtype)


def mat_mean(mat: np.ndarray) -> float:
    """Mean of the first channel."""
    luma = _luma(mat).astype(np.float64)
    return float(luma.sum() / luma.size)


def mat_std_dev(mat: np.ndarray, mean: float) -> float:
    """Population standard deviation of the first channel about ``mean``."""
    luma = _luma(mat).astype(np.float64)
    return float(np.sqrt(np.sum((luma - mean) ** 2) / luma.size))


def format_mat(mat: np.ndarray) -> str:
    """Render the first channel one row per line."""
    luma = _luma(mat)
    return "\n".join(
        "(" + ", ".join(str(int(v)) for v in row) + ")" for row in luma
    )