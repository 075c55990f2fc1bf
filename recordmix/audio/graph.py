"""Per-session audio graph: gain and analysis per source, optional mix-down."""

import logging
from typing import Dict, List, Optional

import numpy as np

from .convert import StreamResampler, conform_channels
from .errors import GraphNotInitialized
from .meter import MAX_DECIBELS, MIN_DECIBELS, smoothed_spectrum, to_byte_spectrum
from .platform import AudioTrack, CaptureStream

logger = logging.getLogger(__name__)

ROLES = ("microphone", "system")


class AudioNode:
    """A processing stage that forwards frames to its connected outputs."""

    def __init__(self, graph: "AudioGraph"):
        self.graph = graph
        self._outputs: List["AudioNode"] = []

    def connect(self, node: "AudioNode") -> "AudioNode":
        if node not in self._outputs:
            self._outputs.append(node)
            node._attach_input(self)
        return node

    def disconnect(self) -> None:
        for node in self._outputs:
            node._detach_input(self)
        self._outputs.clear()

    def _attach_input(self, node: "AudioNode") -> None:
        pass

    def _detach_input(self, node: "AudioNode") -> None:
        pass

    def process(self, frames: np.ndarray, source: Optional["AudioNode"] = None) -> None:
        self._forward(frames)

    def _forward(self, frames: np.ndarray) -> None:
        for node in list(self._outputs):
            node.process(frames, self)


class StreamSourceNode(AudioNode):
    """Feeds a capture stream into the graph at the graph's format."""

    def __init__(self, graph: "AudioGraph", stream: CaptureStream):
        super().__init__(graph)
        self.stream = stream
        self.resampler: Optional[StreamResampler] = None
        if stream.sample_rate != graph.sample_rate:
            self.resampler = StreamResampler(stream.sample_rate, graph.sample_rate, graph.channels)
        stream.connect(self._on_frames)

    def _on_frames(self, frames: np.ndarray) -> None:
        frames = conform_channels(frames, self.graph.channels)
        if self.resampler:
            frames = self.resampler.process(frames)
        if len(frames):
            self._forward(frames)

    def disconnect(self) -> None:
        self.stream.disconnect(self._on_frames)
        super().disconnect()


class GainNode(AudioNode):
    def __init__(self, graph: "AudioGraph", gain: float = 1.0):
        super().__init__(graph)
        self.gain = gain

    def process(self, frames: np.ndarray, source: Optional[AudioNode] = None) -> None:
        if self.gain != 1.0:
            frames = frames * self.gain
        self._forward(frames)


class AnalyserNode(AudioNode):
    """Tap exposing frequency- and time-domain snapshots of what passes through.

    Keeps the most recent ``fft_size`` mono samples; the frequency view
    is smoothed against the previous read.
    """

    def __init__(self, graph: "AudioGraph", fft_size: int = 2048,
                 smoothing_time_constant: float = 0.8):
        super().__init__(graph)
        self.fft_size = fft_size
        self.smoothing_time_constant = smoothing_time_constant
        self.min_decibels = MIN_DECIBELS
        self.max_decibels = MAX_DECIBELS
        self._samples = np.zeros(fft_size, dtype=np.float32)
        self._spectrum: Optional[np.ndarray] = None

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def process(self, frames: np.ndarray, source: Optional[AudioNode] = None) -> None:
        mono = frames.mean(axis=1) if frames.ndim > 1 else frames
        mono = mono.astype(np.float32)
        if len(mono) >= self.fft_size:
            self._samples = mono[-self.fft_size:].copy()
        elif len(mono):
            self._samples = np.concatenate((self._samples[len(mono):], mono))
        self._forward(frames)

    def get_byte_frequency_data(self) -> np.ndarray:
        self._spectrum = smoothed_spectrum(self._samples, self._spectrum, self.smoothing_time_constant)
        return to_byte_spectrum(self._spectrum, self.min_decibels, self.max_decibels)

    def get_float_time_domain_data(self) -> np.ndarray:
        return self._samples[-self.frequency_bin_count:].copy()


class MixDestination(AudioNode):
    """Sums every connected input into one stream.

    Inputs are aligned sample by sample. An input that falls more than
    ``max_backlog`` frames behind is treated as silent for the overflow so
    the mix keeps flowing.
    """

    def __init__(self, graph: "AudioGraph", max_backlog: Optional[int] = None):
        super().__init__(graph)
        self.stream = CaptureStream(graph.sample_rate, graph.channels,
                                    tracks=[AudioTrack(label="mix")], label="mix")
        self.max_backlog = max_backlog if max_backlog is not None else graph.sample_rate // 2
        self._pending: Dict[int, np.ndarray] = {}

    def _empty(self) -> np.ndarray:
        return np.zeros((0, self.graph.channels), dtype=np.float32)

    def _attach_input(self, node: AudioNode) -> None:
        self._pending.setdefault(id(node), self._empty())

    def _detach_input(self, node: AudioNode) -> None:
        self._pending.pop(id(node), None)

    def process(self, frames: np.ndarray, source: Optional[AudioNode] = None) -> None:
        key = id(source)
        if key not in self._pending:
            return
        self._pending[key] = np.concatenate((self._pending[key], frames))
        self._drain()

    def _drain(self) -> None:
        lengths = [len(buffered) for buffered in self._pending.values()]
        count = max(min(lengths), max(lengths) - self.max_backlog)
        if count <= 0:
            return
        mixed = np.zeros((count, self.graph.channels), dtype=np.float32)
        for key, buffered in self._pending.items():
            taken = buffered[:count]
            mixed[:len(taken)] += taken
            self._pending[key] = buffered[len(taken):]
        self.stream.push(np.clip(mixed, -1.0, 1.0))

    def disconnect(self) -> None:
        for track in self.stream.get_tracks():
            track.stop()
        self.stream.disconnect()
        self._pending.clear()
        super().disconnect()


class AudioGraph:
    """Audio context owned by one recording session.

    Every source is wired stream -> gain -> analyser; when a mix is
    requested the destination taps each gain node, so gain changes affect
    metering and the recording alike.
    """

    def __init__(self, sample_rate: int = 44100, channels: int = 2,
                 fft_size: int = 2048, smoothing_time_constant: float = 0.8):
        self.sample_rate = sample_rate
        self.channels = channels
        self.fft_size = fft_size
        self.smoothing_time_constant = smoothing_time_constant
        self.closed = False
        self.sources: Dict[str, StreamSourceNode] = {}
        self.gains: Dict[str, GainNode] = {}
        self.analysers: Dict[str, AnalyserNode] = {}
        self.destination: Optional[MixDestination] = None

    def _require_open(self) -> None:
        if self.closed:
            raise GraphNotInitialized()

    def attach_analysis(self, stream: CaptureStream, role: str) -> AnalyserNode:
        """Wire a stream through a fresh gain + analyser pair registered under ``role``."""
        self._require_open()
        if role not in ROLES:
            raise ValueError(f"Unknown source role: {role}")
        self._release_role(role)

        source = StreamSourceNode(self, stream)
        gain = GainNode(self)
        analyser = AnalyserNode(self, self.fft_size, self.smoothing_time_constant)
        source.connect(gain)
        gain.connect(analyser)

        self.sources[role] = source
        self.gains[role] = gain
        self.analysers[role] = analyser
        logger.debug(f"Analysis attached for {role}: fft_size={self.fft_size}, "
                     f"smoothing={self.smoothing_time_constant}")
        return analyser

    def merge_active(self) -> CaptureStream:
        """Mix every registered source into one stream through a new destination."""
        self._require_open()
        if not self.gains:
            raise GraphNotInitialized("No audio sources are connected to the audio context")
        if self.destination:
            self.destination.disconnect()
        self.destination = MixDestination(self)
        for role in ROLES:
            if role in self.gains:
                self.gains[role].connect(self.destination)
        logger.info(f"Merged {len(self.gains)} sources into one stream")
        return self.destination.stream

    def analyser(self, role: str) -> Optional[AnalyserNode]:
        return self.analysers.get(role)

    def set_gain(self, role: str, value: float) -> None:
        if role not in self.gains:
            raise KeyError(f"No source connected for {role}")
        self.gains[role].gain = float(value)

    def _release_role(self, role: str) -> None:
        for nodes in (self.sources, self.gains, self.analysers):
            node = nodes.pop(role, None)
            if node:
                node.disconnect()

    def reset(self) -> None:
        """Disconnect and drop every node. Safe to call repeatedly."""
        for role in ROLES:
            self._release_role(role)
        if self.destination:
            self.destination.disconnect()
            self.destination = None

    def close(self) -> None:
        self.reset()
        self.closed = True
