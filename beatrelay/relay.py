"""WebSocket relay between a browser client and the PCM streaming server.

For each client connection the relay opens a connection to the upstream
server and runs four tasks. The first forwards the client's control messages
upstream. The second forwards the audio info back to the client and queues
the PCM chunks. The third groups the chunks into sliding windows. The fourth
estimates the tempo of each window and sends the window with its tempo to
the client. The session ends as soon as any of the tasks ends.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any

import websockets

from .audio import AudioInfo, SharedAudioInfo
from .errors import UnexpectedMessageTypeError, to_app_error
from .packet import MessagePack
from .tempo import estimate_tempo, pcm_to_samples
from .windowing import SLIDE_SIZE, WINDOW_SIZE, pcm_data_processing

log = logging.getLogger(__name__)

IP_ADDRESS = "localhost"
PORT = 7000
SERVER_URL = "ws://localhost:5000"
PCM_CHANNEL_CAPACITY = 1000
WINDOW_CHANNEL_CAPACITY = 1000
MAX_MESSAGE_SIZE = 1024 * 1024 * 100

FORWARDED_COMMANDS = ("open", "accept")

_NORMAL_CLOSURE = 1000
# Codes that describe a closure but may not be sent in a close frame.
_RESERVED_CLOSE_CODES = frozenset({1005, 1006, 1015})

_BINARY = (bytes, bytearray, memoryview)


async def _forward_close(source: Any, target: Any) -> None:
    """Close ``target`` with the code and reason ``source`` was closed with."""
    code = getattr(source, "close_code", None)
    reason = getattr(source, "close_reason", None) or ""
    if code is None or code in _RESERVED_CLOSE_CODES:
        code, reason = _NORMAL_CLOSURE, ""
    await target.close(code, reason)


async def handle_client_to_server(client: Any, server: Any) -> None:
    """Forward "open" and "accept" from the client, then its close, upstream."""
    try:
        async for message in client:
            if not isinstance(message, str):
                log.error("Received unsupported message type from client")
                raise UnexpectedMessageTypeError()
            log.info("Received text from client: %r", message)
            if message in FORWARDED_COMMANDS:
                log.info("Forwarding message from client to server: %s", message)
                await server.send(message)
    except websockets.ConnectionClosed:
        return
    log.info(
        "Client disconnected: %s %s",
        getattr(client, "close_code", None),
        getattr(client, "close_reason", None),
    )
    await _forward_close(client, server)


async def handle_server_to_client(
    server: Any,
    pcm_queue: asyncio.Queue,
    client: Any,
    audio_info: SharedAudioInfo,
) -> None:
    """Record and pass on the audio info; queue PCM chunks for windowing.

    When the server closes, the close is passed on to the client and ``None``
    is put on ``pcm_queue`` to end the stream.
    """
    try:
        async for message in server:
            if isinstance(message, str):
                log.info("Received text from server: %r", message)
                audio_info.set(AudioInfo.parse(message))
                await client.send(message)
            elif isinstance(message, _BINARY):
                log.debug("Received %d bytes of PCM from server", len(message))
                await pcm_queue.put(bytes(message))
            else:
                log.error("Received unsupported message type from server")
                raise UnexpectedMessageTypeError()
    except websockets.ConnectionClosed:
        return
    log.info(
        "Server disconnected: %s %s",
        getattr(server, "close_code", None),
        getattr(server, "close_reason", None),
    )
    await _forward_close(server, client)
    await pcm_queue.put(None)


async def window_data_processing(
    window_queue: asyncio.Queue,
    client: Any,
    audio_info: SharedAudioInfo,
) -> None:
    """Estimate the tempo of each window and send it to the client.

    Each window goes out as a :class:`MessagePack` in a binary message.
    ``None`` on ``window_queue`` ends the loop.
    """
    while True:
        packet = await window_queue.get()
        if packet is None:
            return
        info = audio_info.get()
        samples = pcm_to_samples(packet)
        bpm = await asyncio.to_thread(estimate_tempo, samples, float(info.sample_rate))
        await client.send(MessagePack(bytes(packet), bpm).encode())


async def _run_session(client: Any, server: Any) -> None:
    pcm_queue: asyncio.Queue = asyncio.Queue(maxsize=PCM_CHANNEL_CAPACITY)
    window_queue: asyncio.Queue = asyncio.Queue(maxsize=WINDOW_CHANNEL_CAPACITY)
    audio_info = SharedAudioInfo()

    tasks = [
        asyncio.create_task(handle_client_to_server(client, server)),
        asyncio.create_task(
            handle_server_to_client(server, pcm_queue, client, audio_info)
        ),
        asyncio.create_task(
            pcm_data_processing(WINDOW_SIZE, SLIDE_SIZE, pcm_queue, window_queue)
        ),
        asyncio.create_task(window_data_processing(window_queue, client, audio_info)),
    ]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    for task in tasks:
        if task in done and not task.cancelled() and task.exception() is not None:
            raise task.exception()


async def websocket_processing(client_socket: Any, server_url: str = SERVER_URL) -> None:
    """Relay one client session through a new connection to ``server_url``.

    Any failure is raised as an :class:`~beatrelay.errors.AppError`.
    """
    try:
        async with websockets.connect(server_url, max_size=MAX_MESSAGE_SIZE) as server:
            log.info("Connection to server established.")
            await _run_session(client_socket, server)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        app_error = to_app_error(exc)
        if app_error is exc:
            raise
        raise app_error from exc


async def _handle_client(connection: Any, *_: Any) -> None:
    try:
        await websocket_processing(connection)
    except Exception as error:
        log.error("WebSocket processing error: %r", error)
    log.info("WebSocket connection closed.")


async def serve(host: str = IP_ADDRESS, port: int = PORT) -> None:
    """Accept client connections on ``host``:``port`` until cancelled."""
    async with websockets.serve(
        _handle_client, host, port, max_size=MAX_MESSAGE_SIZE
    ) as server:
        for sock in server.sockets:
            address = sock.getsockname()
            log.info("listening on ws://%s:%d", address[0], address[1])
        await asyncio.Future()


def main(argv: list[str] | None = None) -> int:
    """Run the relay server from the command line."""
    parser = argparse.ArgumentParser(
        prog="beatrelay", description="Relay PCM audio and its tempo to clients."
    )
    parser.add_argument("--host", default=IP_ADDRESS, help="address to listen on")
    parser.add_argument("--port", type=int, default=PORT, help="port to listen on")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG)
    try:
        asyncio.run(serve(args.host, args.port))
    except KeyboardInterrupt:
        pass
    return 0