"""WAV encoder recording a live capture stream into memory."""

import asyncio
import io
import logging
import wave
from dataclasses import dataclass
from typing import Callable, List

import numpy as np

from .convert import conform_channels, encode_int16, resample
from .platform import CaptureStream

logger = logging.getLogger(__name__)


@dataclass
class EncoderOptions:
    """Output format of the encoded recording."""
    mime_type: str = "audio/wav"
    channels: int = 2
    sample_rate: int = 44100


class WavEncoder:
    """Collects frames from a stream and produces a 16-bit PCM WAV payload.

    States follow ``inactive -> recording <-> paused -> stopped``; frames
    arriving while paused are dropped.
    """

    def __init__(self, stream: CaptureStream, options: EncoderOptions = None):
        self.stream = stream
        self.options = options or EncoderOptions()
        if self.options.mime_type != "audio/wav":
            raise ValueError(f"Unsupported container: {self.options.mime_type}")
        self.state = "inactive"
        self._chunks: List[np.ndarray] = []

    def _on_frames(self, frames: np.ndarray) -> None:
        if self.state == "recording":
            self._chunks.append(frames)

    def start(self) -> None:
        self._chunks = []
        self.stream.connect(self._on_frames)
        self.state = "recording"
        logger.info(f"Encoder started: {self.options.mime_type}, "
                    f"{self.options.channels} channels, {self.options.sample_rate}Hz")

    def pause(self) -> None:
        if self.state == "recording":
            self.state = "paused"

    def resume(self) -> None:
        if self.state == "paused":
            self.state = "recording"

    async def finalize(self) -> bytes:
        """Stop recording and return the encoded container."""
        # Let frames already queued on the loop reach the encoder
        await asyncio.sleep(0)
        self.stream.disconnect(self._on_frames)
        self.state = "stopped"
        payload = self.get_payload()
        logger.info(f"Encoder finalized: {len(payload)} bytes")
        return payload

    def get_payload(self) -> bytes:
        if self._chunks:
            frames = np.concatenate([conform_channels(chunk, self.options.channels) for chunk in self._chunks])
        else:
            frames = np.zeros((0, self.options.channels), dtype=np.float32)
        frames = resample(frames, self.stream.sample_rate, self.options.sample_rate)

        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wf:
            wf.setnchannels(self.options.channels)
            wf.setsampwidth(2)
            wf.setframerate(self.options.sample_rate)
            wf.writeframes(encode_int16(frames))
        return buffer.getvalue()

    def destroy(self) -> None:
        self.stream.disconnect(self._on_frames)
        self._chunks = []
        self.state = "inactive"


EncoderFactory = Callable[[CaptureStream, EncoderOptions], WavEncoder]
