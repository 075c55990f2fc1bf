"""Capability interfaces for the audio platform the recorder runs on."""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

import numpy as np

from ..models.audio import AudioDevice, DesktopSource
from .errors import SystemAudioUnavailable

logger = logging.getLogger(__name__)

FrameSink = Callable[[np.ndarray], None]


class AudioTrack:
    """A single audio track of a capture stream."""

    kind = "audio"

    def __init__(self, label: str = "", on_stop: Optional[Callable[[], None]] = None):
        self.label = label
        self.ready_state = "live"
        self._on_stop = on_stop

    def stop(self) -> None:
        """Stop the track and release its platform handle. Safe to call twice."""
        if self.ready_state == "ended":
            return
        self.ready_state = "ended"
        if self._on_stop:
            on_stop, self._on_stop = self._on_stop, None
            on_stop()
        logger.debug(f"Track stopped: {self.label}")


class CaptureStream:
    """A live stream of audio frames pushed to connected sinks.

    Frames are float32 arrays of shape ``(frames, channels)`` in [-1, 1].
    """

    def __init__(self, sample_rate: int, channels: int,
                 tracks: Optional[List[AudioTrack]] = None, label: str = ""):
        self.sample_rate = sample_rate
        self.channels = channels
        self.label = label
        self._tracks = list(tracks or [])
        self._sinks: List[FrameSink] = []

    def get_tracks(self) -> List[AudioTrack]:
        return list(self._tracks)

    def get_audio_tracks(self) -> List[AudioTrack]:
        return [track for track in self._tracks if track.kind == "audio"]

    def add_track(self, track: AudioTrack) -> None:
        self._tracks.append(track)

    @property
    def active(self) -> bool:
        return any(track.ready_state == "live" for track in self._tracks)

    def connect(self, sink: FrameSink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def disconnect(self, sink: Optional[FrameSink] = None) -> None:
        if sink is None:
            self._sinks.clear()
        elif sink in self._sinks:
            self._sinks.remove(sink)

    def push(self, frames: np.ndarray) -> None:
        """Deliver frames to every sink; ended streams drop them."""
        if not self.active:
            return
        for sink in list(self._sinks):
            sink(frames)


def is_capture_stream(candidate) -> bool:
    """True if the object satisfies the capture stream shape."""
    return callable(getattr(candidate, "get_tracks", None)) and callable(getattr(candidate, "connect", None))


class AudioPlatform(ABC):
    """Platform services the recorder depends on.

    Implementations raise plain Python exceptions (``PermissionError``,
    ``LookupError``, ``OSError``...) or errors from ``recordmix.audio.errors``;
    the source acquirer normalizes them.
    """

    @abstractmethod
    async def list_input_devices(self) -> List[AudioDevice]:
        """Enumerate input devices. Requires a prior permission grant."""
        pass

    @abstractmethod
    async def get_user_media(self, device_id: Optional[str] = None) -> CaptureStream:
        """Open an audio-only stream on the default or the exact device."""
        pass

    @property
    def supports_desktop_capture(self) -> bool:
        return False

    async def list_desktop_sources(self) -> List[DesktopSource]:
        return []

    async def get_desktop_stream(self, source_id: str) -> CaptureStream:
        """Open the audio of a window or screen through the privileged capturer."""
        raise SystemAudioUnavailable("System audio capture not available")

    def close(self) -> None:
        """Release platform-wide resources."""
        pass
