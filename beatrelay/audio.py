"""Audio stream description and the state shared between relay tasks."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from enum import Enum

from .errors import AudioInfoUndefinedError, ParseAudioInfoError

_UNSIGNED = re.compile(r"\+?[0-9]+")
_U16_MAX = 0xFFFF
_U32_MAX = 0xFFFF_FFFF
PCM_FORMATS = ("float", "int")


def _parse_unsigned(text: str, limit: int) -> int:
    if not _UNSIGNED.fullmatch(text):
        raise ParseAudioInfoError(f"invalid digit found in string: {text}")
    value = int(text)
    if value > limit:
        raise ParseAudioInfoError(f"number too large to fit in target type: {text}")
    return value


@dataclass(frozen=True)
class AudioInfo:
    """Channel count, sample rate, sample width and sample format of a stream."""

    channels: int
    sample_rate: int
    bits_per_sample: int
    pcm_format: str

    @classmethod
    def parse(cls, text: str) -> AudioInfo:
        """Parse ``<channels> <sample_rate> <bits_per_sample> <pcm_format>``."""
        parts = text.split()
        if len(parts) != 4:
            raise ParseAudioInfoError(text)
        channels_text, rate_text, bits_text, pcm_format = parts
        channels = _parse_unsigned(channels_text, _U16_MAX)
        sample_rate = _parse_unsigned(rate_text, _U32_MAX)
        bits_per_sample = _parse_unsigned(bits_text, _U16_MAX)
        if pcm_format not in PCM_FORMATS:
            raise ParseAudioInfoError(f"Invalid PCM format: {pcm_format}")
        return cls(channels, sample_rate, bits_per_sample, pcm_format)

    def to_text(self) -> str:
        """Render the info in the line format that :meth:`parse` reads."""
        return (
            f"{self.channels} {self.sample_rate} "
            f"{self.bits_per_sample} {self.pcm_format}"
        )


class SharedAudioInfo:
    """Audio info written by one task and read by others."""

    def __init__(self, info: AudioInfo | None = None) -> None:
        self._lock = threading.Lock()
        self._info = info

    def set(self, info: AudioInfo) -> None:
        with self._lock:
            self._info = info

    def get(self) -> AudioInfo:
        """Return the stored info, or raise if none has been set yet."""
        with self._lock:
            info = self._info
        if info is None:
            raise AudioInfoUndefinedError()
        return info


class DelayFlag(Enum):
    """Phase of PCM delivery to the client."""

    # Sending of PCM data has just started.
    INITIALIZED = "initialized"
    # PCM data has been sent a threshold number of times.
    ENABLED = "enabled"
    # PCM data has been sent more than the threshold number of times.
    DISABLED = "disabled"