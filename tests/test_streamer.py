import wave
from http import HTTPStatus

import pytest

from beatrelay.errors import AppError, StreamerError
from beatrelay.streamer import (
    FRAMES_PER_CHUNK,
    main,
    wave_streamer,
    websocket_processing,
)


class FakeSocket:
    def __init__(self, messages=(), fail_send=None):
        self._messages = list(messages)
        self.sent = []
        self._fail_send = fail_send

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self._messages:
            yield message

    async def send(self, message):
        if self._fail_send is not None:
            raise self._fail_send
        self.sent.append(message)


def _write_wav(path, frames, rate=48000, channels=1):
    data = bytes((i * 7) % 256 for i in range(frames * channels * 2))
    with wave.open(str(path), "wb") as out:
        out.setnchannels(channels)
        out.setsampwidth(2)
        out.setframerate(rate)
        out.writeframes(data)
    return data


@pytest.fixture
def wav_file(tmp_path):
    path = tmp_path / "sample.wav"
    data = _write_wav(path, 2500)
    return path, data


@pytest.mark.asyncio
async def test_open_sends_audio_info(wav_file):
    path, _ = wav_file
    socket = FakeSocket(["open"])
    await websocket_processing(socket, path)
    assert socket.sent == ["1 48000 16 int"]


@pytest.mark.asyncio
async def test_accept_streams_all_pcm(wav_file):
    path, data = wav_file
    socket = FakeSocket(["accept"])
    await websocket_processing(socket, path)
    assert b"".join(socket.sent) == data
    assert all(len(chunk) == FRAMES_PER_CHUNK * 2 for chunk in socket.sent[:-1])
    assert 0 < len(socket.sent[-1]) <= FRAMES_PER_CHUNK * 2


@pytest.mark.asyncio
async def test_open_then_accept(wav_file):
    path, data = wav_file
    socket = FakeSocket(["open", "accept"])
    await websocket_processing(socket, path)
    assert socket.sent[0] == "1 48000 16 int"
    assert b"".join(socket.sent[1:]) == data


@pytest.mark.asyncio
async def test_wave_streamer_stereo(tmp_path):
    path = tmp_path / "stereo.wav"
    data = _write_wav(path, 1500, channels=2)
    socket = FakeSocket()
    await wave_streamer(socket, path)
    assert b"".join(socket.sent) == data
    assert len(socket.sent[0]) == FRAMES_PER_CHUNK * 2 * 2


@pytest.mark.asyncio
async def test_unexpected_text_is_bad_request(wav_file):
    path, _ = wav_file
    socket = FakeSocket(["hello"])
    with pytest.raises(AppError) as info:
        await websocket_processing(socket, path)
    assert info.value.status_code == HTTPStatus.BAD_REQUEST
    assert info.value.message == "UnexpectedMessageError: hello"
    assert socket.sent == []


@pytest.mark.asyncio
async def test_binary_message_is_bad_request(wav_file):
    path, _ = wav_file
    socket = FakeSocket([b"\x00\x01"])
    with pytest.raises(AppError) as info:
        await websocket_processing(socket, path)
    assert info.value.status_code == HTTPStatus.BAD_REQUEST
    assert info.value.message == (
        "UnexpectedMessageTypeError: unsupported message type received"
    )


@pytest.mark.asyncio
async def test_open_missing_file_is_server_error(tmp_path):
    socket = FakeSocket(["open"])
    with pytest.raises(AppError) as info:
        await websocket_processing(socket, tmp_path / "missing.wav")
    assert info.value.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert info.value.message.startswith("AnalyzerError: ")


@pytest.mark.asyncio
async def test_accept_missing_file_is_streamer_error(tmp_path):
    socket = FakeSocket(["accept"])
    with pytest.raises(AppError) as info:
        await websocket_processing(socket, tmp_path / "missing.wav")
    assert info.value.message.startswith("StreamerError: ")


@pytest.mark.asyncio
async def test_wave_streamer_missing_file(tmp_path):
    with pytest.raises(StreamerError):
        await wave_streamer(FakeSocket(), tmp_path / "missing.wav")


@pytest.mark.asyncio
async def test_wave_streamer_send_failure(wav_file):
    path, _ = wav_file
    socket = FakeSocket(fail_send=ConnectionResetError("reset"))
    with pytest.raises(StreamerError) as info:
        await wave_streamer(socket, path)
    assert isinstance(info.value.__cause__, ConnectionResetError)


@pytest.mark.asyncio
async def test_no_messages_returns_quietly(wav_file):
    path, _ = wav_file
    socket = FakeSocket([])
    assert await websocket_processing(socket, path) is None
    assert socket.sent == []


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit) as info:
        main(["--port", "not-a-number"])
    assert info.value.code == 2