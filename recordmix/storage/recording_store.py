"""Recording store that writes encoded recordings to disk for the host shell."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional


logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    """Outcome of saving a recording."""
    success: bool
    path: Optional[str] = None
    error: Optional[str] = None
    cancelled: bool = False


def default_recording_filename(now: Optional[datetime] = None) -> str:
    """Timestamped filename such as ``recording-2024-05-01T10-20-30-123.wav``."""
    now = now or datetime.now()
    stamp = now.isoformat(timespec="milliseconds").replace(":", "-").replace(".", "-")
    return f"recording-{stamp}.wav"


class RecordingStore:
    """Saves encoded recordings under a recordings directory."""

    def __init__(self, recordings_dir: str = "./recordings"):
        """Initialize recording store.

        Args:
            recordings_dir: Directory finished recordings are written to
        """
        self.recordings_dir = Path(recordings_dir)
        self.recordings_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"RecordingStore initialized with recordings_dir: {self.recordings_dir}")

    def save_recording(self,
                       payload: bytes,
                       filename: Optional[str] = None,
                       confirm_overwrite: Optional[Callable[[Path], bool]] = None) -> SaveResult:
        """Write a recording and report where it went.

        Args:
            payload: Encoded WAV bytes
            filename: Target filename; a timestamped name when omitted
            confirm_overwrite: Asked before replacing an existing file;
                              declining cancels the save

        Returns:
            SaveResult with the written path, the error, or the cancellation
        """
        filename = filename or default_recording_filename()
        if not filename.endswith('.wav'):
            filename += '.wav'

        target = Path(filename)
        if not target.is_absolute():
            target = self.recordings_dir / target

        if target.exists() and confirm_overwrite and not confirm_overwrite(target):
            logger.info(f"Save cancelled, not overwriting: {target}")
            return SaveResult(success=False, cancelled=True)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'wb') as f:
                f.write(payload)
        except OSError as e:
            logger.error(f"Error saving recording: {e}")
            return SaveResult(success=False, error=str(e))

        logger.info(f"Recording saved: {target} ({len(payload)} bytes)")
        return SaveResult(success=True, path=str(target))
