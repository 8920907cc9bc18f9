import numpy as np
import pytest

from deflicker.blockmatch import (
    BlockMatchMethod,
    Rect,
    block_match_value,
    format_mat,
    hist_gray,
    mad,
    mat_mean,
    mat_std_dev,
    matrix_expectation,
    mse,
    new_three_step_search,
)
from deflicker.sequence import SequenceBuffer


def _random_image(seed=0, size=16):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 60000, size=(size, size, 3), dtype=np.uint16)


def test_rect_shifted_and_br():
    rect = Rect(4, 5, 8, 8)
    moved = rect.shifted(-1, 2)
    assert moved == Rect(3, 7, 8, 8)
    assert moved.br == (11, 15)


def test_mse_and_mad_zero_for_identical():
    img = _random_image()
    assert mse(img, img) == 0.0
    assert mad(img, img) == 0.0


def test_mse_is_mad_squared_for_constant_difference():
    a = np.full((4, 4, 3), 7, dtype=np.uint16)
    b = np.full((4, 4, 3), 3, dtype=np.uint16)
    assert mse(a, b) == pytest.approx(mad(a, b) ** 2)
    assert mad(a, b) == mad(b, a)


def test_block_match_value_dispatch():
    a = _random_image(1, 4)
    b = _random_image(2, 4)
    assert block_match_value(a, b, BlockMatchMethod.MSE) == mse(a, b)
    assert block_match_value(a, b, BlockMatchMethod.MAD) == mad(a, b)
    assert block_match_value(a, b, BlockMatchMethod.SSIM) == 0.0


def test_search_finds_horizontal_shift():
    target = _random_image()
    ref = np.roll(target, 1, axis=1)
    vectors = new_three_step_search(target, ref, [Rect(4, 4, 4, 4)], BlockMatchMethod.MSE)
    assert vectors == [(-1, 0)]


def test_search_origin_block_stays():
    img = _random_image()
    vectors = new_three_step_search(img, img, [Rect(0, 0, 4, 4)], BlockMatchMethod.MSE)
    assert vectors == [(0, 0)]


def test_search_one_vector_per_block():
    img = _random_image()
    blocks = [Rect(x, y, 4, 4) for x in (0, 4, 8) for y in (0, 4, 8)]
    vectors = new_three_step_search(img, img, blocks, BlockMatchMethod.MAD)
    assert len(vectors) == len(blocks)


def test_search_block_at_border_defaults_to_origin():
    img = _random_image()
    vectors = new_three_step_search(img, img, [Rect(12, 12, 4, 4)], BlockMatchMethod.MSE)
    assert vectors == [(0, 0)]


def test_mean_and_std_of_constant():
    mat = np.full((3, 3, 3), 500, dtype=np.uint16)
    mean = mat_mean(mat)
    assert mean == 500.0
    assert mat_std_dev(mat, mean) == 0.0


def test_std_dev_matches_numpy():
    img = _random_image(3, 8)
    mean = mat_mean(img)
    assert mat_std_dev(img, mean) == pytest.approx(float(np.std(img[..., 0].astype(float))))


def test_matrix_expectation_keeps_dtype():
    mat = np.full((2, 2, 3), 16, dtype=np.uint16)
    out = matrix_expectation(mat)
    assert out.dtype == np.uint16
    assert np.all(out == 4)


def test_hist_gray_counts_all_pixels():
    buf = SequenceBuffer()
    buf.append(_random_image(4, 8))
    hist = hist_gray(buf)
    assert len(hist) == 65535
    assert sum(hist) == 64


def test_hist_gray_empty_buffer():
    assert hist_gray(SequenceBuffer()) == []


def test_format_mat_one_line_per_row():
    mat = np.arange(6, dtype=np.uint16).reshape(2, 3)
    text = format_mat(mat)
    assert text.splitlines() == ["(0, 1, 2)", "(3, 4, 5)"]