"""Grouping a stream of PCM chunks into sliding windows."""

from __future__ import annotations

import asyncio
import logging
from collections import deque

log = logging.getLogger(__name__)

WINDOW_SIZE = 200
SLIDE_SIZE = 100


class SlidingWindow:
    """Collects chunks and releases ``slide_size`` of them per full window.

    A packet is released each time ``window_size`` chunks are held; it joins
    the oldest ``slide_size`` chunks, which are then dropped.
    """

    def __init__(self, window_size: int = WINDOW_SIZE, slide_size: int = SLIDE_SIZE) -> None:
        if window_size < 0 or slide_size < 0:
            raise ValueError("window and slide sizes must not be negative")
        if slide_size > window_size:
            raise ValueError("slide_size must not exceed window_size")
        self.window_size = window_size
        self.slide_size = slide_size
        self._buffer: deque[bytes] = deque()
        self._count = 0

    def push(self, chunk: bytes) -> bytes | None:
        """Add a chunk; return a packet when the window is full, else None."""
        self._buffer.append(bytes(chunk))
        self._count += 1
        log.debug("counter: %d", self._count)
        if self._count < self.window_size:
            return None
        taken = min(self.slide_size, len(self._buffer))
        packet = b"".join(self._buffer.popleft() for _ in range(taken))
        self._count -= self.slide_size
        return packet


async def pcm_data_processing(
    window_size: int,
    slide_size: int,
    pcm_queue: asyncio.Queue,
    window_queue: asyncio.Queue,
) -> None:
    """Turn chunks from ``pcm_queue`` into packets on ``window_queue``.

    ``None`` on ``pcm_queue`` ends the stream; ``None`` is then put on
    ``window_queue`` in turn.
    """
    window = SlidingWindow(window_size, slide_size)
    while True:
        chunk = await pcm_queue.get()
        if chunk is None:
            break
        packet = window.push(chunk)
        if packet is not None:
            await window_queue.put(packet)
    await window_queue.put(None)