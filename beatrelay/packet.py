"""MessagePack payload carrying a PCM window and its estimated tempo."""

from __future__ import annotations

from dataclasses import dataclass

import msgpack


@dataclass(frozen=True)
class MessagePack:
    """A window of raw PCM bytes with the tempo found in it."""

    pcm: bytes
    bpm: float

    def encode(self) -> bytes:
        """Encode as a map ``{"pcm": [byte, ...], "bpm": float64}``."""
        return msgpack.packb(
            {"pcm": list(self.pcm), "bpm": float(self.bpm)}, use_bin_type=True
        )

    @classmethod
    def decode(cls, data: bytes) -> MessagePack:
        """Decode a payload produced by :meth:`encode`."""
        try:
            obj = msgpack.unpackb(data, raw=False)
        except (msgpack.ExtraData, msgpack.FormatError, msgpack.StackError,
                ValueError) as exc:
            raise ValueError(f"malformed message pack: {exc}") from exc
        if not isinstance(obj, dict) or set(obj) != {"pcm", "bpm"}:
            raise ValueError("message pack must be a map with keys 'pcm' and 'bpm'")
        pcm, bpm = obj["pcm"], obj["bpm"]
        if isinstance(pcm, list):
            try:
                pcm = bytes(pcm)
            except (TypeError, ValueError) as exc:
                raise ValueError("'pcm' must hold byte values") from exc
        elif not isinstance(pcm, bytes):
            raise ValueError("'pcm' must be an array of bytes")
        if isinstance(bpm, bool) or not isinstance(bpm, (int, float)):
            raise ValueError("'bpm' must be a number")
        return cls(pcm, float(bpm))