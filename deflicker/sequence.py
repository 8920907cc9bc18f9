"""An ordered buffer of frames with a movable read cursor."""

from __future__ import annotations

from typing import Callable, Iterator

import numpy as np

Listener = Callable[[], None]


class SequenceBuffer:
    """Holds a sequence of frames and a cursor pointing at the current one.

    Frames are numpy arrays shaped ``(rows, cols)`` or ``(rows, cols, channels)``.
    Listeners registered in ``index_listeners`` are called whenever the cursor
    moves or the buffer is cleared; those in ``pixels_listeners`` are called
    when the first frame arrives.
    """

    def __init__(self) -> None:
        self._frames: list[np.ndarray] = []
        self._index = 0
        self.index_listeners: list[Listener] = []
        self.pixels_listeners: list[Listener] = []

    def _notify_index(self) -> None:
        for listener in self.index_listeners:
            listener()

    def _notify_pixels(self) -> None:
        for listener in self.pixels_listeners:
            listener()

    @property
    def index(self) -> int:
        """Position of the cursor."""
        return self._index

    @index.setter
    def index(self, value: int) -> None:
        self._index = value
        self._notify_index()

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self._frames)

    def append(self, frame: np.ndarray) -> None:
        """Add a frame at the end of the sequence."""
        self._frames.append(frame)
        if len(self._frames) == 1:
            self._notify_pixels()

    def clear(self) -> None:
        """Drop every frame; the cursor position is left as it is."""
        self._frames.clear()
        self._notify_index()

    def read(self, index: int | None = None) -> np.ndarray | None:
        """Return the frame at ``index`` (the cursor when omitted), or None if out of range."""
        position = self._index if index is None else index
        if position < 0 or position >= len(self._frames):
            return None
        return self._frames[position]

    def next(self) -> None:
        """Move the cursor one frame forward, stopping at the last frame."""
        if not 0 <= self._index < len(self._frames):
            return
        if self._index + 1 > len(self._frames) - 1:
            return
        self._index += 1
        self._notify_index()

    def prev(self) -> None:
        """Move the cursor one frame back, stopping at the first frame."""
        if not 0 <= self._index < len(self._frames):
            return
        if self._index - 1 < 0:
            return
        self._index -= 1
        self._notify_index()

    def insert(self, index: int, frame: np.ndarray) -> None:
        """Insert a frame before position ``index``."""
        self._frames.insert(index, frame)

    def frame_pixels(self) -> int:
        """Number of pixels in the first frame, or 0 when the buffer is empty."""
        if not self._frames:
            return 0
        first = self._frames[0]
        return int(first.shape[0] * first.shape[1])