"""Services layer for recordmix application logic."""

from .recording_service import RecordingService
from .session_pub import SessionPublisher

__all__ = [
    "RecordingService",
    "SessionPublisher"
]
