"""Storage of finished recordings."""

from .recording_store import RecordingStore, SaveResult

__all__ = [
    "RecordingStore",
    "SaveResult",
]
