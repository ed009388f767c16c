"""WebSocket server that describes a WAV file and streams its PCM body.

A peer sends "open" to receive the audio info line, then "accept" to
receive the file's samples as binary messages. The messages come at the
pace the audio would play.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Any

import websockets

from .errors import (
    StreamerError,
    UnexpectedMessageError,
    UnexpectedMessageTypeError,
    to_app_error,
)
from .wav import (
    DEFAULT_FRAMES_PER_CHUNK,
    DEFAULT_WAV_PATH,
    PathLike,
    chunk_interval,
    iter_pcm_chunks,
    read_spec,
    wave_analyzer,
)

log = logging.getLogger(__name__)

IP_ADDRESS = "localhost"
PORT = 5000
MAX_MESSAGE_SIZE = 1024 * 1024 * 100
FRAMES_PER_CHUNK = DEFAULT_FRAMES_PER_CHUNK

COMMANDS = ("open", "accept")


async def wave_streamer(socket: Any, path: PathLike = DEFAULT_WAV_PATH) -> None:
    """Send the PCM body of the WAV file at ``path`` over ``socket``.

    Each binary message holds ``FRAMES_PER_CHUNK`` frames of 16-bit
    little-endian samples; after each one the streamer waits as long as
    that audio lasts.
    """
    try:
        spec = read_spec(path)
        interval = chunk_interval(spec, FRAMES_PER_CHUNK)
    except (OSError, ValueError) as exc:
        raise StreamerError(str(exc)) from exc

    for chunk in iter_pcm_chunks(path, FRAMES_PER_CHUNK):
        try:
            await socket.send(chunk)
        except (websockets.ConnectionClosed, OSError) as exc:
            raise StreamerError(str(exc)) from exc
        await asyncio.sleep(interval)


async def _dispatch(socket: Any, path: PathLike) -> None:
    async for message in socket:
        if not isinstance(message, str):
            log.error("Received unsupported message type from client")
            raise UnexpectedMessageTypeError()
        if message not in COMMANDS:
            log.info("Received unexpected text: %r", message)
            raise UnexpectedMessageError(message)
        log.info("Received text: %r", message)

        if message == "open":
            # FORMAT: <channels> <sample_rate> <bits_per_sample> <pcm_format>
            info = wave_analyzer(path)
            await socket.send(info.to_text())
        else:
            await wave_streamer(socket, path)
    log.info(
        "Client disconnected: %s %s",
        getattr(socket, "close_code", None),
        getattr(socket, "close_reason", None),
    )


async def websocket_processing(socket: Any, path: PathLike = DEFAULT_WAV_PATH) -> None:
    """Serve one peer's "open" and "accept" requests until it disconnects.

    Any failure is raised as an :class:`~beatrelay.errors.AppError`.
    """
    try:
        await _dispatch(socket, path)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        app_error = to_app_error(exc)
        if app_error is exc:
            raise
        raise app_error from exc


async def serve(
    host: str = IP_ADDRESS, port: int = PORT, path: PathLike = DEFAULT_WAV_PATH
) -> None:
    """Stream ``path`` to peers connecting on ``host``:``port`` until cancelled."""

    async def handle(connection: Any, *_: Any) -> None:
        try:
            await websocket_processing(connection, path)
        except Exception as error:
            log.error("WebSocket error: %r", error)

    async with websockets.serve(handle, host, port, max_size=MAX_MESSAGE_SIZE) as server:
        for sock in server.sockets:
            address = sock.getsockname()
            log.info("listening on ws://%s:%d", address[0], address[1])
        await asyncio.Future()


def main(argv: list[str] | None = None) -> int:
    """Run the streaming server from the command line."""
    parser = argparse.ArgumentParser(
        prog="beatrelay-streamer", description="Stream a WAV file over WebSocket."
    )
    parser.add_argument("--host", default=IP_ADDRESS, help="address to listen on")
    parser.add_argument("--port", type=int, default=PORT, help="port to listen on")
    parser.add_argument(
        "--wav", type=Path, default=DEFAULT_WAV_PATH, help="WAV file to stream"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG)
    try:
        asyncio.run(serve(args.host, args.port, args.wav))
    except KeyboardInterrupt:
        pass
    return 0