"""WebSocket WAV streaming and relaying with sliding-window tempo estimation."""

__version__ = "0.1.0"