"""Frame-to-frame linear luminance correction driven by a chosen image statistic."""

from __future__ import annotations

import enum
from typing import Sequence

import numpy as np

from deflicker.sequence import SequenceBuffer

_FULL_SCALE = 65535.0


class Eigenvalue(enum.Enum):
    """Statistic the linear model is fitted to."""

    AVERAGE_GRAYSCALE = enum.auto()
    STANDARD_DEVIATION = enum.auto()


def _first_channel(frame: np.ndarray) -> np.ndarray:
    return frame[..., 0] if frame.ndim == 3 else frame


def _saturate(values: np.ndarray, dtype: np.dtype) -> np.ndarray:
    """Round and clamp to ``dtype`` the way a saturating cast does."""
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        values = np.nan_to_num(values, nan=0.0, posinf=info.max, neginf=info.min)
        return np.clip(np.rint(values), info.min, info.max).astype(dtype)
    return values.astype(dtype)


def _linear(frame: np.ndarray, scale: float, offset: float) -> np.ndarray:
    """``frame * scale + offset`` with the offset applied to the first channel only."""
    with np.errstate(all="ignore"):
        result = frame.astype(np.float64) * scale
        if result.ndim == 3:
            result[..., 0] += offset
        else:
            result += offset
    return _saturate(result, frame.dtype)


def _sums(prev: np.ndarray, cur: np.ndarray) -> tuple[float, float, float, float]:
    cross_prev_cur = float(np.sum(prev * cur))
    cross_prev_prev = float(np.sum(prev * prev))
    return cross_prev_cur, cross_prev_prev, float(prev.sum()), float(cur.sum())


def _float32_mean(values: Sequence[float]) -> np.float32:
    total = np.float32(0.0)
    for value in values:
        total = np.float32(float(total) + float(value))
    return np.float32(float(total) / len(values))


def deflicker_linear_lzy(
    src: SequenceBuffer,
    dst: SequenceBuffer,
    mode: Eigenvalue = Eigenvalue.AVERAGE_GRAYSCALE,
    src_luminance: Sequence[float] = (),
) -> None:
    """Fill ``dst`` with ``src`` corrected frame by frame against the previous output.

    The first frame is copied unchanged. Each following frame is fitted to the
    previously corrected frame with a linear model ``cur = alpha * prev + beta``
    and mapped back through its inverse.
    """
    if len(dst):
        dst.clear()
    first = src.read(0)
    if first is None:
        return
    dst.append(first)

    if mode is Eigenvalue.AVERAGE_GRAYSCALE:
        for i in range(1, len(src)):
            cur_frame = src.read(i)
            prev = _first_channel(dst.read(i - 1)).astype(np.float64)
            cur = _first_channel(cur_frame).astype(np.float64)
            pixels = np.float64(cur.size)
            cross1, cross2, prev_sum, cur_sum = _sums(prev, cur)
            with np.errstate(all="ignore"):
                prev_e = np.float64(prev_sum) / pixels
                cur_e = np.float64(cur_sum) / pixels
                alpha = (np.float64(cross1) - cur_e * prev_e) / (np.float64(cross2) - prev_e)
                beta = cur_e - alpha * prev_e
                scale = np.float64(1.0) / alpha
                offset = -(beta / alpha)
            dst.append(_linear(cur_frame, float(scale), float(offset)))
        return

    if not src_luminance:
        raise ValueError("standard deviation mode needs the source luminance of every frame")
    src_mean = _float32_mean(src_luminance)
    for i in range(1, len(src)):
        cur_frame = src.read(i)
        prev = _first_channel(dst.read(i - 1)).astype(np.float64) / _FULL_SCALE
        cur = _first_channel(cur_frame).astype(np.float64) / _FULL_SCALE
        pixels = np.float64(cur.size)
        cross1, cross2, prev_sum, cur_sum = _sums(prev, cur)
        with np.errstate(all="ignore"):
            prev_e = abs(np.float64(prev_sum) / pixels - np.float64(src_mean))
            cur_e = abs(np.float64(cur_sum) / pixels - np.float64(src_mean))
            alpha = np.float32((np.float64(cross1) - cur_e * prev_e) / (np.float64(cross2) - prev_e))
            beta = np.float32(cur_e - np.float64(alpha) * prev_e)
            scale = np.float64(1.0) / np.float64(alpha)
            offset = -np.float64(np.float32(beta / alpha))
        dst.append(_linear(cur_frame, float(scale), float(offset)))