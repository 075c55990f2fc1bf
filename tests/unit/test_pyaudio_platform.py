"""Unit tests for PyAudioPlatform using a mocked PortAudio."""

import asyncio

import numpy as np
import pyaudio
import pytest

from recordmix.audio.acquirer import SourceAcquirer
from recordmix.audio.errors import DeviceNotFound, NoAudioTracks, SystemAudioUnavailable
from recordmix.audio.pyaudio_platform import PyAudioPlatform


@pytest.mark.unit
class TestPyAudioPlatform:
    """Test cases for PyAudioPlatform."""

    def test_list_input_devices_skips_outputs_and_loopbacks(self, mock_pyaudio, run):
        platform = PyAudioPlatform()

        devices = run(platform.list_input_devices())

        assert [(d.device_id, d.label) for d in devices] == [("0", "Built-in Microphone")]

    def test_desktop_sources_are_loopback_devices(self, mock_pyaudio, run):
        platform = PyAudioPlatform()

        sources = run(platform.list_desktop_sources())

        assert platform.supports_desktop_capture is True
        assert [(s.id, s.name) for s in sources] == [("device:2", "Monitor of Built-in Audio")]

    def test_open_default_microphone(self, mock_pyaudio, run):
        platform = PyAudioPlatform(sample_rate=44100, channels=2, chunk_size=512)

        stream = run(platform.get_user_media())

        kwargs = mock_pyaudio['instance'].open.call_args.kwargs
        assert kwargs['format'] == pyaudio.paInt16
        assert kwargs['channels'] == 1  # limited by the device
        assert kwargs['rate'] == 44100
        assert kwargs['input'] is True
        assert kwargs['input_device_index'] == 0
        assert kwargs['frames_per_buffer'] == 512
        assert stream.channels == 1
        assert len(stream.get_audio_tracks()) == 1

    def test_callback_frames_delivered_on_loop(self, mock_pyaudio):
        platform = PyAudioPlatform()

        async def scenario():
            stream = await platform.get_user_media()
            received = []
            stream.connect(received.append)
            callback = mock_pyaudio['instance'].open.call_args.kwargs['stream_callback']
            result = callback(np.array([16384, -16384], dtype=np.int16).tobytes(), 2, {}, 0)
            assert received == []
            await asyncio.sleep(0)
            return received, result

        received, result = asyncio.run(scenario())

        assert result == (None, pyaudio.paContinue)
        assert received[0].shape == (2, 1)
        assert np.allclose(received[0][:, 0], [0.5, -0.5])

    def test_stopping_track_closes_portaudio_stream(self, mock_pyaudio, run):
        platform = PyAudioPlatform()
        stream = run(platform.get_user_media())

        for track in stream.get_tracks():
            track.stop()
            track.stop()

        mock_pyaudio['stream'].stop_stream.assert_called_once()
        mock_pyaudio['stream'].close.assert_called_once()

    def test_invalid_device_maps_to_device_not_found(self, mock_pyaudio, run):
        mock_pyaudio['instance'].get_device_info_by_index.side_effect = OSError(-9996, "Invalid device index")
        acquirer = SourceAcquirer(PyAudioPlatform())

        with pytest.raises(DeviceNotFound):
            run(acquirer.acquire_microphone("7"))

    def test_output_only_device_maps_to_device_not_found(self, mock_pyaudio, run):
        acquirer = SourceAcquirer(PyAudioPlatform())

        with pytest.raises(DeviceNotFound):
            run(acquirer.acquire_microphone("1"))

    def test_non_numeric_device_maps_to_device_not_found(self, mock_pyaudio, run):
        acquirer = SourceAcquirer(PyAudioPlatform())

        with pytest.raises(DeviceNotFound):
            run(acquirer.acquire_microphone("usb-headset"))

    def test_open_loopback_source(self, mock_pyaudio, run):
        acquirer = SourceAcquirer(PyAudioPlatform())

        stream = run(acquirer.acquire_system_source("device:2"))

        assert stream.label == "Monitor of Built-in Audio"
        assert mock_pyaudio['instance'].open.call_args.kwargs['input_device_index'] == 2

    def test_unknown_desktop_source(self, mock_pyaudio, run):
        acquirer = SourceAcquirer(PyAudioPlatform())

        with pytest.raises(SystemAudioUnavailable):
            run(acquirer.acquire_system_source("window:42"))

    def test_desktop_source_without_audio(self, mock_pyaudio, run):
        acquirer = SourceAcquirer(PyAudioPlatform())

        with pytest.raises(NoAudioTracks):
            run(acquirer.acquire_system_source("device:1"))

    def test_close_terminates_pyaudio(self, mock_pyaudio, run):
        platform = PyAudioPlatform()
        run(platform.list_input_devices())

        platform.close()
        platform.close()

        mock_pyaudio['instance'].terminate.assert_called_once()
