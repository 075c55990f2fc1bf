"""Pytest configuration and fixtures for recordmix tests."""

import asyncio
import logging
import tempfile
from typing import List, Optional
from unittest.mock import Mock, patch

import numpy as np
import pytest

from recordmix.audio.platform import AudioPlatform, AudioTrack, CaptureStream
from recordmix.audio.scheduler import ManualFrameScheduler
from recordmix.models.audio import AudioDevice, DesktopSource
from recordmix.services.recording_service import RecordingService


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single component")
    config.addinivalue_line("markers", "integration: tests of a whole recording session")
    config.addinivalue_line("markers", "slow: tests that wait on the wall clock")


class FakePlatform(AudioPlatform):
    """In-memory platform handing out controllable capture streams."""

    def __init__(self, sample_rate: int = 44100, channels: int = 2):
        self.sample_rate = sample_rate
        self.channels = channels
        self.desktop_supported = True
        self.desktop_tracks = 1
        self.desktop_extra_tracks: List[AudioTrack] = []
        self.microphone_error: Optional[Exception] = None
        self.desktop_error: Optional[Exception] = None
        self.microphone_result = None
        self.gate: Optional[asyncio.Event] = None
        self.devices = [
            AudioDevice(device_id="default", label="Built-in Microphone"),
            AudioDevice(device_id="usb-4f2a9c", label=""),
        ]
        self.opened: List[CaptureStream] = []
        self.microphone_requests: List[Optional[str]] = []
        self.desktop_requests: List[str] = []

    async def list_input_devices(self) -> List[AudioDevice]:
        return list(self.devices)

    async def get_user_media(self, device_id: Optional[str] = None) -> CaptureStream:
        self.microphone_requests.append(device_id)
        if self.gate is not None:
            await self.gate.wait()
        if self.microphone_error:
            raise self.microphone_error
        if self.microphone_result is not None:
            return self.microphone_result
        stream = CaptureStream(self.sample_rate, self.channels,
                               tracks=[AudioTrack(label="microphone")], label="microphone")
        self.opened.append(stream)
        return stream

    @property
    def supports_desktop_capture(self) -> bool:
        return self.desktop_supported

    async def list_desktop_sources(self) -> List[DesktopSource]:
        return [DesktopSource(id="win1", name="Meeting window")]

    async def get_desktop_stream(self, source_id: str) -> CaptureStream:
        self.desktop_requests.append(source_id)
        if self.desktop_error:
            raise self.desktop_error
        tracks = [AudioTrack(label=f"system-{i}") for i in range(self.desktop_tracks)]
        tracks.extend(self.desktop_extra_tracks)
        stream = CaptureStream(self.sample_rate, self.channels, tracks=tracks, label="system")
        self.opened.append(stream)
        return stream


class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_platform():
    return FakePlatform()


@pytest.fixture
def manual_scheduler():
    return ManualFrameScheduler()


@pytest.fixture
def manual_clock():
    return ManualClock()


@pytest.fixture
def service(fake_platform, manual_scheduler, manual_clock):
    """Recording service wired to fakes; closed after the test."""
    recording_service = RecordingService(fake_platform, scheduler=manual_scheduler, clock=manual_clock)
    yield recording_service
    recording_service.close()


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sine_frames():
    """Generate stereo float frames of a 440 Hz tone."""
    def generate(count: int = 4410, sample_rate: int = 44100, amplitude: float = 0.5,
                 channels: int = 2) -> np.ndarray:
        t = np.arange(count) / sample_rate
        tone = (amplitude * np.sin(2 * np.pi * 440 * t)).astype(np.float32)
        return np.repeat(tone.reshape(-1, 1), channels, axis=1)

    return generate


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_stream.is_active.return_value = True
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        devices = [
            {"index": 0, "name": "Built-in Microphone", "maxInputChannels": 1},
            {"index": 1, "name": "Speakers", "maxInputChannels": 0},
            {"index": 2, "name": "Monitor of Built-in Audio", "maxInputChannels": 2},
        ]
        mock_pyaudio_instance.get_device_count.return_value = len(devices)
        mock_pyaudio_instance.get_device_info_by_index.side_effect = lambda index: devices[index]
        mock_pyaudio_instance.get_default_input_device_info.return_value = devices[0]
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream,
            'devices': devices,
        }
