"""Data models for the recordmix package."""

from .audio import AudioSource, RecordingState, AudioDevice, DesktopSource, AudioLevels
from .events import SessionEvent

__all__ = [
    "AudioSource",
    "RecordingState",
    "AudioDevice",
    "DesktopSource",
    "AudioLevels",
    "SessionEvent",
]
