"""PyAudio-backed audio platform."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import pyaudio

from ..models.audio import AudioDevice, DesktopSource
from .convert import decode_int16
from .errors import SystemAudioUnavailable
from .platform import AudioPlatform, AudioTrack, CaptureStream

logger = logging.getLogger(__name__)

# Input devices that carry what the machine is playing rather than a microphone
LOOPBACK_MARKERS = ("monitor", "loopback", "stereo mix", "what u hear", "blackhole", "soundflower")

DESKTOP_PREFIX = "device:"


class PyAudioPlatform(AudioPlatform):
    """Captures microphones and loopback devices through PortAudio.

    PortAudio invokes stream callbacks on its own thread; frames are handed
    to the event loop with ``call_soon_threadsafe`` so every consumer runs on
    the loop thread.
    """

    def __init__(self, sample_rate: int = 44100, channels: int = 2, chunk_size: int = 1024):
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_size = chunk_size
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None

    def _pyaudio(self) -> pyaudio.PyAudio:
        if self.pyaudio_instance is None:
            self.pyaudio_instance = pyaudio.PyAudio()
        return self.pyaudio_instance

    def _input_devices(self) -> List[Dict[str, Any]]:
        pa = self._pyaudio()
        devices = []
        for index in range(pa.get_device_count()):
            info = pa.get_device_info_by_index(index)
            if info.get("maxInputChannels", 0) > 0:
                devices.append(info)
        return devices

    @staticmethod
    def _is_loopback(info: Dict[str, Any]) -> bool:
        name = str(info.get("name", "")).lower()
        return any(marker in name for marker in LOOPBACK_MARKERS)

    async def list_input_devices(self) -> List[AudioDevice]:
        return [
            AudioDevice(device_id=str(info["index"]), label=str(info.get("name", "")))
            for info in self._input_devices()
            if not self._is_loopback(info)
        ]

    def _resolve_device(self, device_id: Optional[str]) -> Dict[str, Any]:
        pa = self._pyaudio()
        if device_id in (None, "", "default"):
            return pa.get_default_input_device_info()
        try:
            index = int(device_id)
        except ValueError:
            raise LookupError(f"Unknown audio device: {device_id}")
        return pa.get_device_info_by_index(index)

    def _open(self, info: Dict[str, Any], label: str) -> CaptureStream:
        loop = asyncio.get_running_loop()
        channels = max(1, min(self.channels, int(info["maxInputChannels"])))
        stream = CaptureStream(self.sample_rate, channels, label=label)

        def on_audio(in_data, frame_count, time_info, status):
            try:
                loop.call_soon_threadsafe(stream.push, decode_int16(in_data, channels))
            except RuntimeError:
                # Event loop is gone; let PortAudio wind the stream down
                return (None, pyaudio.paComplete)
            return (None, pyaudio.paContinue)

        pa_stream = self._pyaudio().open(
            format=pyaudio.paInt16,
            channels=channels,
            rate=self.sample_rate,
            input=True,
            input_device_index=int(info["index"]),
            frames_per_buffer=self.chunk_size,
            stream_callback=on_audio,
        )

        def release() -> None:
            if pa_stream.is_active():
                pa_stream.stop_stream()
            pa_stream.close()

        stream.add_track(AudioTrack(label=label, on_stop=release))
        logger.info(f"Audio stream opened on '{label}': {self.sample_rate}Hz, "
                    f"{channels} channels, {self.chunk_size} samples/chunk")
        return stream

    async def get_user_media(self, device_id: Optional[str] = None) -> CaptureStream:
        info = self._resolve_device(device_id)
        if int(info.get("maxInputChannels", 0)) <= 0:
            raise LookupError(f"Device '{info.get('name')}' has no input channels")
        return self._open(info, str(info.get("name", "microphone")))

    @property
    def supports_desktop_capture(self) -> bool:
        return any(self._is_loopback(info) for info in self._input_devices())

    async def list_desktop_sources(self) -> List[DesktopSource]:
        pa = self._pyaudio()
        sources = []
        for index in range(pa.get_device_count()):
            info = pa.get_device_info_by_index(index)
            if self._is_loopback(info):
                sources.append(DesktopSource(id=f"{DESKTOP_PREFIX}{index}", name=str(info.get("name", ""))))
        return sources

    async def get_desktop_stream(self, source_id: str) -> CaptureStream:
        if not source_id.startswith(DESKTOP_PREFIX):
            raise SystemAudioUnavailable(f"Unknown desktop source: {source_id}")
        info = self._resolve_device(source_id[len(DESKTOP_PREFIX):])
        label = str(info.get("name", source_id))
        if int(info.get("maxInputChannels", 0)) <= 0:
            # The source exists but exposes no audio
            return CaptureStream(self.sample_rate, self.channels, label=label)
        return self._open(info, label)

    def close(self) -> None:
        if self.pyaudio_instance:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
