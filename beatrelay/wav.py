"""Reading WAV headers and streaming their PCM body in fixed-size chunks."""

from __future__ import annotations

import logging
import os
import struct
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union

import numpy as np

from .audio import AudioInfo
from .errors import AnalyzerError, StreamerError

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

DEFAULT_WAV_PATH = Path("data/sample3.wav")
DEFAULT_FRAMES_PER_CHUNK = 1024

_FORMAT_PCM = 0x0001
_FORMAT_FLOAT = 0x0003
_FORMAT_EXTENSIBLE = 0xFFFE


@dataclass(frozen=True)
class WavSpec:
    """The header fields of a WAV file."""

    channels: int
    sample_rate: int
    bits_per_sample: int
    sample_format: str

    def to_audio_info(self) -> AudioInfo:
        """Describe the file as the audio info sent to the relay."""
        return AudioInfo(
            self.channels, self.sample_rate, self.bits_per_sample, self.sample_format
        )


@dataclass(frozen=True)
class _Layout:
    spec: WavSpec
    block_align: int
    data_length: int


def _parse_fmt(body: bytes) -> tuple[WavSpec, int]:
    tag, channels, sample_rate, _byte_rate, block_align, bits = struct.unpack_from(
        "<HHIIHH", body
    )
    if tag == _FORMAT_EXTENSIBLE:
        if len(body) < 40:
            raise ValueError("extensible fmt chunk is too short")
        (valid_bits,) = struct.unpack_from("<H", body, 18)
        (tag,) = struct.unpack_from("<H", body, 24)
        bits = valid_bits or bits
    if tag == _FORMAT_PCM:
        sample_format = "int"
    elif tag == _FORMAT_FLOAT:
        sample_format = "float"
    else:
        raise ValueError(f"unsupported format tag {tag:#06x}")
    if channels == 0:
        raise ValueError("file declares zero channels")
    if block_align == 0 or bits == 0:
        raise ValueError("invalid block alignment or sample width")
    if bits > (block_align // channels) * 8:
        raise ValueError("sample width exceeds block alignment")
    return WavSpec(channels, sample_rate, bits, sample_format), block_align


def _read_layout(stream: BinaryIO) -> _Layout:
    """Read the header, leaving the stream at the first byte of sample data."""
    header = stream.read(12)
    if len(header) < 12 or header[:4] != b"RIFF" or header[8:12] != b"WAVE":
        raise ValueError("not a RIFF WAVE file")
    found: tuple[WavSpec, int] | None = None
    while True:
        head = stream.read(8)
        if len(head) < 8:
            raise ValueError("no data chunk found" if found else "no fmt chunk found")
        chunk_id = head[:4]
        (size,) = struct.unpack("<I", head[4:])
        if chunk_id == b"fmt ":
            body = stream.read(size)
            if size < 16 or len(body) < size:
                raise ValueError("invalid fmt chunk")
            found = _parse_fmt(body)
            if size % 2:
                stream.read(1)
        elif chunk_id == b"data":
            if found is None:
                raise ValueError("data chunk precedes fmt chunk")
            spec, block_align = found
            return _Layout(spec, block_align, size)
        else:
            stream.seek(size + size % 2, os.SEEK_CUR)


def read_spec(path: PathLike) -> WavSpec:
    """Read the header of the WAV file at ``path``."""
    with open(path, "rb") as stream:
        return _read_layout(stream).spec


def wave_analyzer(path: PathLike = DEFAULT_WAV_PATH) -> AudioInfo:
    """Return the audio info of the WAV file at ``path``."""
    try:
        spec = read_spec(path)
    except (OSError, ValueError) as exc:
        raise AnalyzerError(str(exc)) from exc
    log.info(
        "WAV: %dHz, %dch, %dbits, %s",
        spec.sample_rate,
        spec.channels,
        spec.bits_per_sample,
        spec.sample_format,
    )
    return spec.to_audio_info()


def _to_i16_le(raw: bytes, container: int) -> bytes:
    if container == 2:
        return raw
    widened = np.frombuffer(raw, dtype=np.uint8).astype("<i2") - 128
    return widened.astype("<i2").tobytes()


def _stream_chunks(path: PathLike, frames_per_chunk: int) -> Iterator[bytes]:
    try:
        stream = open(path, "rb")
    except OSError as exc:
        raise StreamerError(str(exc)) from exc
    with stream:
        try:
            layout = _read_layout(stream)
        except (OSError, ValueError) as exc:
            raise StreamerError(str(exc)) from exc
        spec = layout.spec
        log.info(
            "WAV: %dHz, %dch, %dbits, %s",
            spec.sample_rate,
            spec.channels,
            spec.bits_per_sample,
            spec.sample_format,
        )
        container = layout.block_align // spec.channels
        # Samples that do not fit a 16-bit integer are skipped, leaving no chunks.
        if spec.sample_format != "int" or spec.bits_per_sample > 16:
            return
        if container not in (1, 2):
            return
        chunk_bytes = frames_per_chunk * spec.channels * container
        remaining = layout.data_length
        while remaining > 0:
            raw = stream.read(min(chunk_bytes, remaining))
            if not raw:
                break
            remaining -= len(raw)
            usable = len(raw) - len(raw) % container
            if usable == 0:
                break
            yield _to_i16_le(raw[:usable], container)


def iter_pcm_chunks(
    path: PathLike = DEFAULT_WAV_PATH,
    frames_per_chunk: int = DEFAULT_FRAMES_PER_CHUNK,
) -> Iterator[bytes]:
    """Yield the file's samples as 16-bit little-endian PCM, chunk by chunk.

    Each chunk holds ``frames_per_chunk`` frames of all channels; the last
    may be shorter.
    """
    if frames_per_chunk <= 0:
        raise ValueError("frames_per_chunk must be positive")
    return _stream_chunks(path, frames_per_chunk)


def chunk_interval(spec: WavSpec, frames_per_chunk: int = DEFAULT_FRAMES_PER_CHUNK) -> float:
    """Seconds of audio one chunk of ``frames_per_chunk`` frames lasts."""
    if spec.sample_rate <= 0:
        raise ValueError("sample rate must be positive")
    return frames_per_chunk / spec.sample_rate