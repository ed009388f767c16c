"""Turning PCM bytes into samples and estimating their tempo."""

from __future__ import annotations

import numpy as np

N_FFT = 2048
HOP_LENGTH = 512
START_BPM = 120.0
STD_BPM = 1.0
MAX_TEMPO = 320.0
AC_SIZE = 8.0
TOP_DB = 80.0


def pcm_to_samples(binary: bytes) -> np.ndarray:
    """Read 16-bit little-endian samples scaled into [-1, 1).

    A trailing odd byte is ignored.
    """
    usable = len(binary) - len(binary) % 2
    ints = np.frombuffer(bytes(binary[:usable]), dtype="<i2")
    return ints.astype(np.float32) / np.float32(32768.0)


def _onset_strength(y: np.ndarray) -> np.ndarray:
    padded = np.pad(y, N_FFT // 2)
    if padded.size < N_FFT:
        padded = np.pad(padded, (0, N_FFT - padded.size))
    n_frames = 1 + (padded.size - N_FFT) // HOP_LENGTH
    index = np.arange(N_FFT)[None, :] + HOP_LENGTH * np.arange(n_frames)[:, None]
    frames = padded[index] * np.hanning(N_FFT)
    magnitude = np.abs(np.fft.rfft(frames, axis=1))
    db = 20.0 * np.log10(np.maximum(magnitude, 1e-10))
    db = np.maximum(db, db.max() - TOP_DB)
    flux = np.maximum(0.0, np.diff(db, axis=0))
    return flux.mean(axis=1)


def _autocorrelate(x: np.ndarray) -> np.ndarray:
    size = 2 * x.size
    spectrum = np.fft.rfft(x, size)
    return np.fft.irfft(np.abs(spectrum) ** 2, size)[: x.size]


def estimate_tempo(samples, sample_rate: float) -> float:
    """Estimate the tempo of ``samples`` in beats per minute.

    Returns 0.0 when the signal has no onsets to measure.
    """
    if sample_rate <= 0:
        raise ValueError("sample rate must be positive")
    y = np.asarray(samples, dtype=np.float64).ravel()
    if y.size == 0 or not np.any(y):
        return 0.0
    onset = _onset_strength(y)
    if onset.size < 2 or not np.any(onset):
        return 0.0
    ac = _autocorrelate(onset)
    if ac[0] <= 0:
        return 0.0
    max_lag = min(ac.size - 1, int(round(AC_SIZE * sample_rate / HOP_LENGTH)))
    min_lag = max(1, int(np.ceil(60.0 * sample_rate / (HOP_LENGTH * MAX_TEMPO))))
    if min_lag > max_lag:
        return 0.0
    lags = np.arange(min_lag, max_lag + 1)
    bpms = 60.0 * sample_rate / (HOP_LENGTH * lags)
    strength = np.clip(ac[lags] / ac[0], 0.0, None)
    prior = -0.5 * ((np.log2(bpms) - np.log2(START_BPM)) / STD_BPM) ** 2
    score = np.log1p(1e6 * strength) + prior
    return float(bpms[int(np.argmax(score))])