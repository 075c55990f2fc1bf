"""Sample format conversions shared by the graph and the encoder."""

from math import gcd

import numpy as np
from scipy.signal import firwin, resample_poly


def decode_int16(data: bytes, channels: int) -> np.ndarray:
    """Decode interleaved 16-bit PCM into float32 frames of shape (n, channels)."""
    samples = np.frombuffer(data, dtype="<i2").astype(np.float32) / 32768.0
    return samples.reshape(-1, channels)


def encode_int16(frames: np.ndarray) -> bytes:
    """Encode float frames in [-1, 1] as interleaved little-endian 16-bit PCM."""
    clipped = np.clip(frames, -1.0, 1.0)
    return (clipped * 32767.0).astype("<i2").tobytes()


def conform_channels(frames: np.ndarray, channels: int) -> np.ndarray:
    """Up- or down-mix frames to the requested channel count."""
    if frames.ndim == 1:
        frames = frames.reshape(-1, 1)
    current = frames.shape[1]
    if current == channels:
        return frames
    if current == 1:
        return np.repeat(frames, channels, axis=1)
    if channels == 1:
        return frames.mean(axis=1, keepdims=True)
    if current > channels:
        return frames[:, :channels]
    mono = frames.mean(axis=1, keepdims=True)
    return np.repeat(mono, channels, axis=1)


def resample(frames: np.ndarray, from_rate: int, to_rate: int) -> np.ndarray:
    """Resample frames along the time axis with a polyphase filter."""
    if from_rate == to_rate or len(frames) == 0:
        return frames
    divisor = gcd(int(from_rate), int(to_rate))
    up = int(to_rate) // divisor
    down = int(from_rate) // divisor
    return resample_poly(frames, up, down, axis=0).astype(np.float32)


class StreamResampler:
    """Polyphase resampler for a stream delivered in arbitrary chunks.

    Filter history and the output phase carry over between calls, so
    chunk boundaries leave no trace and N input frames always yield
    ``ceil(N * to_rate / from_rate)`` output frames in total. The filter
    matches ``resample_poly``'s Kaiser design; output lags the input by
    the filter's group delay.
    """

    def __init__(self, from_rate: int, to_rate: int, channels: int):
        divisor = gcd(int(from_rate), int(to_rate))
        self.up = int(to_rate) // divisor
        self.down = int(from_rate) // divisor
        self.channels = channels

        max_rate = max(self.up, self.down)
        half_len = 10 * max_rate
        taps = firwin(2 * half_len + 1, 1.0 / max_rate, window=("kaiser", 5.0)) * self.up
        self.width = -(-len(taps) // self.up)
        padded = np.zeros(self.width * self.up)
        padded[:len(taps)] = taps
        # phases[p, t] weighs input sample i0 - t for upsampled index i0 * up + p
        self.phases = padded.reshape(self.width, self.up).T.astype(np.float32)

        self._history = np.zeros((self.width - 1, channels), dtype=np.float32)
        self._consumed = 0
        self._produced = 0

    def process(self, frames: np.ndarray) -> np.ndarray:
        total = self._consumed + len(frames)
        end = (total * self.up + self.down - 1) // self.down
        buffer = np.concatenate((self._history, frames.astype(np.float32)))
        buffer_start = self._consumed - (self.width - 1)

        outputs = np.arange(self._produced, end, dtype=np.int64)
        positions = outputs * self.down
        anchors = positions // self.up - buffer_start
        windows = buffer[anchors[:, None] - np.arange(self.width)[None, :]]
        resampled = np.einsum("mt,mtc->mc", self.phases[positions % self.up], windows)

        if self.width > 1:
            self._history = buffer[len(buffer) - (self.width - 1):]
        self._consumed = total
        self._produced = end
        return resampled.astype(np.float32)
