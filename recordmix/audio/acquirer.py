"""Acquisition of microphone and system audio streams."""

import logging
from typing import List, Optional

from ..models.audio import AudioDevice, DesktopSource
from .errors import (
    AcquisitionFailed,
    AudioCaptureError,
    DeviceNotFound,
    NoAudioTracks,
    PermissionDenied,
    SourceRequired,
    SystemAudioUnavailable,
)
from .platform import AudioPlatform, CaptureStream, is_capture_stream

logger = logging.getLogger(__name__)

# PortAudio paInvalidDevice and paDeviceUnavailable
MISSING_DEVICE_ERRNOS = (-9996, -9985)


def _is_missing_device(error: Exception) -> bool:
    if isinstance(error, LookupError):
        return True
    if isinstance(error, OSError) and error.errno in MISSING_DEVICE_ERRNOS:
        return True
    return False


class SourceAcquirer:
    """Obtains capture streams from the platform and normalizes its failures."""

    def __init__(self, platform: AudioPlatform):
        self.platform = platform

    async def acquire_microphone(self, device_id: Optional[str] = None) -> CaptureStream:
        """Open the default microphone, or exactly ``device_id`` when given.

        Raises:
            PermissionDenied: microphone access was refused
            DeviceNotFound: the device does not exist or has no input
            AcquisitionFailed: any other platform failure
        """
        try:
            stream = await self.platform.get_user_media(device_id)
        except AudioCaptureError:
            raise
        except PermissionError as e:
            raise PermissionDenied() from e
        except Exception as e:
            if _is_missing_device(e):
                raise DeviceNotFound() from e
            raise AcquisitionFailed(f"Could not open the microphone: {e}") from e

        self._require_stream(stream, "microphone")
        logger.info(f"Microphone acquired: {device_id or 'default'}")
        return stream

    async def acquire_system_source(self, source_id: Optional[str]) -> CaptureStream:
        """Open the audio of a desktop window or screen.

        Raises:
            SourceRequired: no source identifier was given
            SystemAudioUnavailable: capture unsupported or the source is gone
            NoAudioTracks: the source exists but exposes no audio
            AcquisitionFailed: any other platform failure
        """
        if not source_id:
            raise SourceRequired()
        if not self.platform.supports_desktop_capture:
            raise SystemAudioUnavailable("System audio capture not available")

        try:
            stream = await self.platform.get_desktop_stream(source_id)
        except AudioCaptureError:
            raise
        except Exception as e:
            if _is_missing_device(e):
                raise SystemAudioUnavailable(f"System audio source is not available: {source_id}") from e
            raise AcquisitionFailed(f"Could not capture system audio: {e}") from e

        self._require_stream(stream, "system audio")
        tracks = stream.get_tracks()
        if not any(getattr(track, "kind", None) == "audio" for track in tracks):
            for track in tracks:
                track.stop()
            raise NoAudioTracks()

        logger.info(f"System audio acquired from source: {source_id}")
        return stream

    @staticmethod
    def _require_stream(stream, what: str) -> None:
        if not is_capture_stream(stream):
            raise AcquisitionFailed(f"The platform returned an invalid {what} stream")

    async def list_microphones(self) -> List[AudioDevice]:
        """Enumerate microphones after probing for permission.

        Returns an empty list when permission is missing or enumeration fails.
        """
        try:
            probe = await self.platform.get_user_media(None)
            for track in probe.get_tracks():
                track.stop()

            devices = await self.platform.list_input_devices()
            return [
                AudioDevice(
                    device_id=device.device_id,
                    label=device.label or f"Microphone {device.device_id[:5]}",
                    kind="audioinput",
                )
                for device in devices
                if device.kind == "audioinput"
            ]
        except Exception as e:
            logger.error(f"Error getting microphones: {e}")
            return []

    async def list_system_sources(self) -> List[DesktopSource]:
        if not self.platform.supports_desktop_capture:
            return []
        return await self.platform.list_desktop_sources()
