"""Loudness and spectrum reduction for level meters."""

from typing import Optional

import numpy as np

MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0


def average_volume(byte_data) -> float:
    """Reduce a byte-domain spectrum to a loudness percentage.

    The mean magnitude is normalized by 255 and scaled to [0, 100].
    An empty buffer reads as silence.
    """
    data = np.asarray(byte_data, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return float(data.sum() / data.size / 255.0 * 100.0)


def smoothed_spectrum(samples: np.ndarray,
                      previous: Optional[np.ndarray],
                      smoothing_time_constant: float) -> np.ndarray:
    """Blackman-windowed magnitude spectrum blended with the previous block."""
    size = len(samples)
    windowed = samples * np.blackman(size)
    magnitude = np.abs(np.fft.rfft(windowed))[: size // 2] / size
    if previous is None or len(previous) != len(magnitude):
        previous = np.zeros_like(magnitude)
    return smoothing_time_constant * previous + (1.0 - smoothing_time_constant) * magnitude


def to_byte_spectrum(magnitude: np.ndarray,
                     min_decibels: float = MIN_DECIBELS,
                     max_decibels: float = MAX_DECIBELS) -> np.ndarray:
    """Map magnitudes onto unsigned bytes across the [min_db, max_db] range."""
    with np.errstate(divide="ignore"):
        decibels = 20.0 * np.log10(magnitude)
    scaled = (decibels - min_decibels) * (255.0 / (max_decibels - min_decibels))
    return np.clip(np.floor(scaled), 0, 255).astype(np.uint8)
