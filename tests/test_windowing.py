import asyncio

import pytest

from beatrelay.windowing import SlidingWindow, pcm_data_processing


def test_no_packet_before_window_full():
    window = SlidingWindow(3, 2)
    assert window.push(b"a") is None
    assert window.push(b"b") is None


def test_packet_holds_oldest_slide_chunks():
    window = SlidingWindow(3, 2)
    window.push(b"a")
    window.push(b"b")
    assert window.push(b"c") == b"ab"
    assert window.push(b"d") is None
    assert window.push(b"e") == b"cd"
    assert window.push(b"f") is None
    assert window.push(b"g") == b"ef"


def test_every_chunk_released_once_in_order():
    window = SlidingWindow(4, 2)
    chunks = [bytes([i]) for i in range(20)]
    packets = [p for p in (window.push(c) for c in chunks) if p is not None]
    joined = b"".join(packets)
    assert joined == b"".join(chunks[: len(joined)])
    assert all(len(p) == 2 for p in packets)
    assert len(chunks) - len(joined) == 2


def test_slide_equal_to_window():
    window = SlidingWindow(2, 2)
    results = [window.push(c) for c in (b"x", b"y", b"z", b"w")]
    assert results == [None, b"xy", None, b"zw"]


def test_slide_larger_than_window_rejected():
    with pytest.raises(ValueError):
        SlidingWindow(2, 3)


def test_negative_size_rejected():
    with pytest.raises(ValueError):
        SlidingWindow(-1, 0)


@pytest.mark.asyncio
async def test_pcm_data_processing_forwards_packets():
    pcm_queue: asyncio.Queue = asyncio.Queue()
    window_queue: asyncio.Queue = asyncio.Queue()
    for chunk in (b"a", b"b", b"c", b"d", b"e"):
        pcm_queue.put_nowait(chunk)
    pcm_queue.put_nowait(None)
    await asyncio.wait_for(pcm_data_processing(3, 2, pcm_queue, window_queue), 5)
    received = []
    while not window_queue.empty():
        received.append(window_queue.get_nowait())
    assert received == [b"ab", b"cd", None]


@pytest.mark.asyncio
async def test_pcm_data_processing_empty_stream():
    pcm_queue: asyncio.Queue = asyncio.Queue()
    window_queue: asyncio.Queue = asyncio.Queue()
    pcm_queue.put_nowait(None)
    await asyncio.wait_for(pcm_data_processing(3, 1, pcm_queue, window_queue), 5)
    assert window_queue.get_nowait() is None
    assert window_queue.empty()