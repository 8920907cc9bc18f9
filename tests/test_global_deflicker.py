import numpy as np
import pytest

from deflicker.global_deflicker import (
    GlobalDeflicker,
    GlobalMethod,
    frame_luminance,
    luminance_histogram,
)
from deflicker.sequence import SequenceBuffer


def _frame(value, rows=16, cols=16):
    return np.full((rows, cols, 3), value, dtype=np.uint16)


def _buffer(*values, rows=16, cols=16):
    buffer = SequenceBuffer()
    for value in values:
        buffer.append(_frame(value, rows, cols))
    return buffer


def test_frame_luminance_uses_first_channel():
    frame = _frame(7)
    frame[..., 1] = 500
    assert frame_luminance(frame) == 7.0


def test_luminance_histogram_lists_only_used_levels():
    frame = np.array([[[1, 0, 0], [1, 0, 0], [3, 0, 0]]], dtype=np.uint16)
    assert luminance_histogram(frame) == [
        {"index": "1", "value": 2},
        {"index": "3", "value": 1},
    ]


def test_default_method_is_block_match():
    deflicker = GlobalDeflicker(SequenceBuffer(), SequenceBuffer())
    assert deflicker.method is GlobalMethod.LINEAR_BLOCK_MATCH


def test_sequence_update_measures_source_and_rewinds():
    src = _buffer(10, 20, 30)
    deflicker = GlobalDeflicker(src, SequenceBuffer())
    deflicker.on_sequence_update()
    assert deflicker.src_luminance == [10.0, 20.0, 30.0]
    assert src.index == 0


def test_sequence_update_on_empty_buffer_keeps_nothing():
    deflicker = GlobalDeflicker(SequenceBuffer(), SequenceBuffer())
    deflicker.on_sequence_update()
    assert deflicker.src_luminance == []


def test_ffmpeg_process_scales_all_frames_by_one_factor():
    src = _buffer(1000, 2000, 3000)
    dst = SequenceBuffer()
    deflicker = GlobalDeflicker(src, dst, GlobalMethod.LINEAR_FFMPEG)
    calls = []
    deflicker.done_listeners.append(lambda: calls.append(True))
    deflicker.on_sequence_update()
    deflicker.process()
    assert len(dst) == 3
    assert calls == [True]
    ratios = [d / s for d, s in zip(deflicker.dst_luminance, deflicker.src_luminance)]
    assert ratios[1] == pytest.approx(ratios[0], rel=1e-3)
    assert ratios[2] == pytest.approx(ratios[0], rel=1e-3)
    assert not deflicker.busy


def test_ffmpeg_process_without_measurement_fails():
    deflicker = GlobalDeflicker(_buffer(100, 200), SequenceBuffer(), GlobalMethod.LINEAR_FFMPEG)
    with pytest.raises(ValueError):
        deflicker.process()


def test_lzy_process_keeps_first_frame():
    src = _buffer(100, 200, 150)
    dst = SequenceBuffer()
    deflicker = GlobalDeflicker(src, dst, GlobalMethod.LINEAR_LZY)
    deflicker.on_sequence_update()
    deflicker.process()
    assert len(dst) == len(src)
    assert np.array_equal(dst.read(0), src.read(0))
    assert deflicker.dst_luminance[0] == deflicker.src_luminance[0]


def test_block_match_without_block_size_raises_and_releases():
    src = _buffer(100, 200, rows=16, cols=67)
    deflicker = GlobalDeflicker(src, SequenceBuffer())
    calls = []
    deflicker.done_listeners.append(lambda: calls.append(True))
    with pytest.raises(ValueError):
        deflicker.process()
    assert not deflicker.busy
    assert calls == []
    with pytest.raises(ValueError):
        deflicker.process()


def test_proc_done_on_empty_destination_does_not_notify():
    deflicker = GlobalDeflicker(SequenceBuffer(), SequenceBuffer())
    calls = []
    deflicker.done_listeners.append(lambda: calls.append(True))
    deflicker.on_proc_done()
    assert calls == []
    assert deflicker.dst_luminance == []