"""Audio-related data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AudioSource(Enum):
    """Which physical inputs a recording captures."""
    MICROPHONE = "microphone"
    SYSTEM = "system"
    BOTH = "both"

    @property
    def uses_microphone(self) -> bool:
        return self in (AudioSource.MICROPHONE, AudioSource.BOTH)

    @property
    def uses_system(self) -> bool:
        return self in (AudioSource.SYSTEM, AudioSource.BOTH)


class RecordingState(Enum):
    """Lifecycle state of a recording session."""
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass
class AudioDevice:
    """An input device that can be recorded from."""
    device_id: str
    label: str
    kind: str = "audioinput"


@dataclass
class DesktopSource:
    """A window or screen that may expose system audio."""
    id: str
    name: str
    thumbnail: Optional[str] = None  # data URL, owned by the host shell


@dataclass
class AudioLevels:
    """Latest loudness snapshot, each channel in [0, 100]."""
    microphone: float = 0.0
    system: float = 0.0
