"""Global deflicker that scales every frame by one factor taken from a mean of luminances."""

from __future__ import annotations

import enum
import math
from typing import Sequence

import numpy as np

from deflicker.sequence import SequenceBuffer

_REFERENCE = 0


class FactorType(enum.Enum):
    """Kind of mean the correction factor is built from."""

    ARITHMETIC_MEAN = enum.auto()
    GEOMETRIC_MEAN = enum.auto()
    HARMONIC_MEAN = enum.auto()
    QUADRATIC_MEAN = enum.auto()
    CUBIC_MEAN = enum.auto()
    POWER_MEAN = enum.auto()
    MEDIAN = enum.auto()


def _saturate(values: np.ndarray, dtype: np.dtype) -> np.ndarray:
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        values = np.nan_to_num(values, nan=0.0, posinf=info.max, neginf=info.min)
        return np.clip(np.rint(values), info.min, info.max).astype(dtype)
    return values.astype(dtype)


def correction_factor(luminance: Sequence[float], factor_type: FactorType) -> float:
    """Ratio of the chosen mean of ``luminance`` to the first frame's luminance.

    The median kind has no implementation and always gives 0.
    """
    values = [np.float64(v) for v in luminance]
    if not values:
        raise ValueError("luminance list is empty")
    count = len(values)
    reference = values[_REFERENCE]
    inverse_count = np.float64(np.float32(1.0) / np.float32(count))

    with np.errstate(all="ignore"):
        if factor_type is FactorType.ARITHMETIC_MEAN:
            factor = np.float64(sum(values)) / count
        elif factor_type is FactorType.GEOMETRIC_MEAN:
            factor = np.power(np.float64(math.prod(values)), inverse_count)
        elif factor_type is FactorType.HARMONIC_MEAN:
            factor = count / np.float64(sum(np.float64(1.0) / v for v in values))
        elif factor_type is FactorType.QUADRATIC_MEAN:
            factor = np.float64(np.sqrt(np.float32(sum(v * v for v in values) / count)))
        elif factor_type is FactorType.CUBIC_MEAN:
            factor = np.float64(np.cbrt(np.float32(sum(v * v * v for v in values) / count)))
        elif factor_type is FactorType.POWER_MEAN:
            total = np.float64(sum(np.power(v, np.float64(count)) for v in values)) / count
            factor = np.power(total, inverse_count)
        else:
            return 0.0
        factor = factor / reference
    return float(factor)


def deflicker_linear_ffmpeg(
    src: SequenceBuffer,
    dst: SequenceBuffer,
    factor_type: FactorType = FactorType.CUBIC_MEAN,
    src_luminance: Sequence[float] = (),
) -> None:
    """Fill ``dst`` with every frame of ``src`` multiplied by the correction factor."""
    if len(dst):
        dst.clear()
    factor = correction_factor(src_luminance, factor_type)
    for frame in src:
        with np.errstate(all="ignore"):
            scaled = frame.astype(np.float64) * factor
        dst.append(_saturate(scaled, frame.dtype))