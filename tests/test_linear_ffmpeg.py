import numpy as np
import pytest

from deflicker.linear_ffmpeg import FactorType, correction_factor, deflicker_linear_ffmpeg
from deflicker.sequence import SequenceBuffer

MEANS = [
    FactorType.ARITHMETIC_MEAN,
    FactorType.GEOMETRIC_MEAN,
    FactorType.HARMONIC_MEAN,
    FactorType.QUADRATIC_MEAN,
    FactorType.CUBIC_MEAN,
    FactorType.POWER_MEAN,
]


def _buffer(*frames):
    buffer = SequenceBuffer()
    for frame in frames:
        buffer.append(frame)
    return buffer


@pytest.mark.parametrize("kind", MEANS)
def test_uniform_luminance_gives_unit_factor(kind):
    assert correction_factor([5.0, 5.0, 5.0], kind) == pytest.approx(1.0, rel=1e-5)


@pytest.mark.parametrize("kind", MEANS)
def test_factor_is_scale_invariant(kind):
    base = [2.0, 4.0, 8.0]
    scaled = [v * 3.0 for v in base]
    assert correction_factor(scaled, kind) == pytest.approx(correction_factor(base, kind), rel=1e-5)


def test_arithmetic_factor_value():
    assert correction_factor([2.0, 4.0], FactorType.ARITHMETIC_MEAN) == pytest.approx(1.5)


def test_mean_ordering():
    lum = [1.0, 2.0, 6.0]
    harmonic = correction_factor(lum, FactorType.HARMONIC_MEAN)
    geometric = correction_factor(lum, FactorType.GEOMETRIC_MEAN)
    arithmetic = correction_factor(lum, FactorType.ARITHMETIC_MEAN)
    quadratic = correction_factor(lum, FactorType.QUADRATIC_MEAN)
    cubic = correction_factor(lum, FactorType.CUBIC_MEAN)
    assert harmonic < geometric < arithmetic < quadratic < cubic


def test_median_gives_zero():
    assert correction_factor([3.0, 9.0], FactorType.MEDIAN) == 0.0


def test_empty_luminance_raises():
    with pytest.raises(ValueError):
        correction_factor([], FactorType.ARITHMETIC_MEAN)


def test_unit_factor_keeps_frames():
    frames = [np.full((3, 3, 3), v, dtype=np.uint16) for v in (100, 200)]
    src = _buffer(*frames)
    dst = _buffer(np.zeros((1, 1), dtype=np.uint16))
    deflicker_linear_ffmpeg(src, dst, FactorType.ARITHMETIC_MEAN, [7.0, 7.0])
    assert len(dst) == 2
    for original, out in zip(frames, dst):
        np.testing.assert_array_equal(original, out)


def test_output_saturates():
    src = _buffer(np.full((2, 2), 40000, dtype=np.uint16))
    dst = SequenceBuffer()
    deflicker_linear_ffmpeg(src, dst, FactorType.ARITHMETIC_MEAN, [1.0, 3.0])
    assert dst.read(0).tolist() == [[65535, 65535], [65535, 65535]]


def test_median_zeroes_frames():
    src = _buffer(np.full((2, 2), 1234, dtype=np.uint16))
    dst = SequenceBuffer()
    deflicker_linear_ffmpeg(src, dst, FactorType.MEDIAN, [1.0])
    assert not dst.read(0).any()