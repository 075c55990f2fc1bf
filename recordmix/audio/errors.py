"""Error taxonomy for audio capture, mixing and recording."""

from typing import Optional


class AudioCaptureError(Exception):
    """Base class for every error raised by the capture core.

    Each subclass carries a default human-readable message so callers can
    show ``str(error)`` to the user verbatim.
    """

    default_message = "Audio capture failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class PermissionDenied(AudioCaptureError):
    default_message = (
        "Microphone access was denied. Allow microphone access for this "
        "application and try again."
    )


class DeviceNotFound(AudioCaptureError):
    default_message = "No microphone was found. Connect a microphone or choose another device."


class SourceRequired(AudioCaptureError):
    default_message = "Select a window or screen to capture system audio from."


class SystemAudioUnavailable(AudioCaptureError):
    default_message = "System audio capture is not available on this platform or source."


class NoAudioTracks(AudioCaptureError):
    default_message = (
        "The selected source does not provide any audio. Some windows and "
        "screens expose no audio; choose another source."
    )


class AcquisitionFailed(AudioCaptureError):
    default_message = "Could not open the audio source."


class NoActiveRecording(AudioCaptureError):
    default_message = "No recording in progress"


class GraphNotInitialized(AudioCaptureError):
    default_message = "Audio context not initialized"


class RecordingAlreadyActive(AudioCaptureError):
    default_message = "A recording is already in progress. Stop it before starting a new one."
