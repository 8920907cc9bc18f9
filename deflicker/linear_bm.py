"""Block-matching deflicker: blocks are corrected against their motion-matched predecessor."""

from __future__ import annotations

import enum

import numpy as np

from deflicker.blockmatch import (
    BlockMatchMethod,
    Rect,
    mat_mean,
    mat_std_dev,
    matrix_expectation,
    new_three_step_search,
)
from deflicker.sequence import SequenceBuffer

MIN_BLOCK_SIZE = 16
MAX_BLOCK_SIZE = 64
FLICKER_LUMA_THRESHOLD = 5

_KERNEL = ((1, 2, 1), (2, 4, 2), (1, 2, 1))
_KERNEL_SUM = 16


class SearchMethod(enum.Enum):
    """Motion search strategy."""

    TSS = enum.auto()
    NTSS = enum.auto()


def _saturate(values: np.ndarray, dtype: np.dtype) -> np.ndarray:
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        values = np.nan_to_num(values, nan=0.0, posinf=info.max, neginf=info.min)
        return np.clip(np.rint(values), info.min, info.max).astype(dtype)
    return values.astype(dtype)


def choose_block_size(width: int, height: int) -> int:
    """Smallest block size from 16 up that divides the width, then the height."""
    size = MIN_BLOCK_SIZE
    while width % size != 0:
        size += 1
        if size > MAX_BLOCK_SIZE:
            break
    while height % size != 0:
        size += 1
        if size > MAX_BLOCK_SIZE:
            break
    if size > MAX_BLOCK_SIZE:
        raise ValueError(f"no suitable block size for a {width}x{height} frame")
    return size


def block_grid(width: int, height: int, block_size: int) -> list[Rect]:
    """Square blocks tiling the frame, column by column."""
    return [
        Rect(x * block_size, y * block_size, block_size, block_size)
        for x in range(width // block_size)
        for y in range(height // block_size)
    ]


def _inside(rect: Rect, frame: np.ndarray) -> bool:
    rows, cols = frame.shape[:2]
    right, bottom = rect.br
    return rect.x >= 0 and rect.y >= 0 and right <= cols and bottom <= rows


def _smooth(block: np.ndarray) -> np.ndarray:
    """3x3 Gaussian blur with mirrored borders, keeping the element type."""
    pad = [(1, 1), (1, 1)] + [(0, 0)] * (block.ndim - 2)
    padded = np.pad(block.astype(np.float64), pad, mode="reflect")
    rows, cols = block.shape[:2]
    acc = np.zeros(block.shape, dtype=np.float64)
    for dy, kernel_row in enumerate(_KERNEL):
        for dx, weight in enumerate(kernel_row):
            acc += weight * padded[dy:dy + rows, dx:dx + cols]
    return _saturate(acc / _KERNEL_SUM, block.dtype)


def _correct_block(cur_block: np.ndarray, prev_block: np.ndarray) -> None:
    """Map ``cur_block`` onto the statistics of ``prev_block`` in place."""
    cur_mean = mat_mean(cur_block)
    prev_mean = mat_mean(prev_block)
    if abs(cur_mean - prev_mean) < FLICKER_LUMA_THRESHOLD:
        return
    cur_std = np.float64(mat_std_dev(cur_block, cur_mean))
    prev_std = np.float64(mat_std_dev(prev_block, prev_mean))
    cur_e = matrix_expectation(cur_block)
    prev_e = matrix_expectation(prev_block)
    dtype = cur_block.dtype
    with np.errstate(all="ignore"):
        alpha = cur_std / prev_std
        beta = _saturate(cur_e.astype(np.float64) - alpha * prev_e.astype(np.float64), dtype)
        corrected = _saturate((cur_block.astype(np.float64) - beta) / alpha, dtype)
    cur_block[...] = _smooth(corrected)


def deflicker_linear_bm(
    src: SequenceBuffer,
    dst: SequenceBuffer,
    mode: SearchMethod = SearchMethod.NTSS,
) -> None:
    """Fill ``dst`` with ``src`` corrected block by block.

    Motion vectors always come from the new three-step search, whatever
    ``mode`` is. Source frames are left untouched.
    """
    if len(dst):
        dst.clear()
    first = src.read(0)
    if first is None:
        return
    dst.append(first)

    rows, cols = first.shape[:2]
    blocks = block_grid(cols, rows, choose_block_size(cols, rows))

    for i in range(1, len(src)):
        prev_img = src.read(i - 1).copy()
        cur_img = src.read(i).copy()
        vectors = new_three_step_search(prev_img, cur_img, blocks, BlockMatchMethod.MSE)
        for block, (dx, dy) in zip(blocks, vectors):
            prev_rect = block.shifted(dx, dy)
            if not _inside(prev_rect, prev_img):
                raise IndexError(f"matched block {prev_rect} lies outside frame {i - 1}")
            _correct_block(block.crop(cur_img), prev_rect.crop(prev_img))
        dst.append(cur_img)