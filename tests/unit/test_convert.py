"""Unit tests for sample format conversions."""

import numpy as np
import pytest

from recordmix.audio.convert import StreamResampler, conform_channels, decode_int16, encode_int16


def tone(count, sample_rate, frequency=440.0, amplitude=0.5, channels=2):
    t = np.arange(count) / sample_rate
    samples = (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)
    return np.repeat(samples.reshape(-1, 1), channels, axis=1)


def push_in_chunks(resampler, frames, chunk_size):
    return [resampler.process(frames[i:i + chunk_size]) for i in range(0, len(frames), chunk_size)]


@pytest.mark.unit
class TestSampleConversion:
    """Test cases for PCM and channel helpers."""

    def test_int16_decode_and_encode(self):
        frames = decode_int16(np.array([0, 16384, -32768, 32767], dtype="<i2").tobytes(), 2)

        assert frames.shape == (2, 2)
        assert frames[0, 1] == pytest.approx(0.5)
        assert encode_int16(np.array([[2.0, -2.0]])) == np.array([32767, -32767], dtype="<i2").tobytes()

    def test_conform_channels(self):
        mono = np.array([[0.1], [0.2]], dtype=np.float32)

        assert conform_channels(mono, 2).shape == (2, 2)
        assert conform_channels(np.ones((3, 2)), 1).shape == (3, 1)


@pytest.mark.unit
class TestStreamResampler:
    """Test cases for chunked resampling."""

    @pytest.mark.parametrize("from_rate,to_rate,expected", [(48000, 44100, 44100), (44100, 48000, 48000)])
    def test_one_second_in_chunks_keeps_length(self, from_rate, to_rate, expected):
        resampler = StreamResampler(from_rate, to_rate, channels=2)

        chunks = push_in_chunks(resampler, tone(from_rate, from_rate), 1024)

        assert sum(len(chunk) for chunk in chunks) == expected
        assert all(chunk.shape[1] == 2 for chunk in chunks)

    def test_chunk_size_does_not_change_output(self):
        frames = tone(9600, 48000)
        whole = StreamResampler(48000, 44100, channels=2).process(frames)

        chunked = np.concatenate(push_in_chunks(StreamResampler(48000, 44100, channels=2), frames, 333))

        assert chunked.shape == whole.shape
        assert np.allclose(chunked, whole, atol=1e-5)

    def test_chunked_tone_is_continuous(self):
        resampler = StreamResampler(48000, 44100, channels=2)

        output = np.concatenate(push_in_chunks(resampler, tone(48000, 48000), 1024))[:, 0]

        clean_step = 2 * np.pi * 440 / 44100 * 0.5
        steady = output[64:]
        assert np.abs(np.diff(steady)).max() < clean_step * 1.05
        assert np.abs(steady).max() == pytest.approx(0.5, abs=0.01)

    def test_empty_chunk(self):
        resampler = StreamResampler(48000, 44100, channels=2)

        assert resampler.process(np.zeros((0, 2), dtype=np.float32)).shape == (0, 2)
