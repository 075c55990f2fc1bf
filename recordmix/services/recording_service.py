"""Recording service that manages the capture, mix and encode lifecycle."""

import logging
import time
from typing import Callable, Optional, Union

from ..audio.acquirer import SourceAcquirer
from ..audio.encoder import EncoderFactory, EncoderOptions, WavEncoder
from ..audio.errors import AcquisitionFailed, NoActiveRecording, RecordingAlreadyActive
from ..audio.graph import AnalyserNode, AudioGraph
from ..audio.monitor import LevelMonitor, LevelsObserver, WaveformObserver
from ..audio.platform import AudioPlatform, CaptureStream
from ..audio.scheduler import AsyncioFrameScheduler, FrameScheduler
from ..config import RecorderConfig
from ..models.audio import AudioSource, RecordingState
from .session_pub import SessionPublisher

logger = logging.getLogger(__name__)


class RecordingService:
    """Stateful controller for one recording at a time.

    Owns the acquired streams, the audio graph, the level monitor and the
    encoder. Any failure while starting releases everything acquired so far
    before the error reaches the caller.
    """

    def __init__(self,
                 platform: AudioPlatform,
                 config: Optional[RecorderConfig] = None,
                 scheduler: Optional[FrameScheduler] = None,
                 encoder_factory: Optional[EncoderFactory] = None,
                 publisher: Optional[SessionPublisher] = None,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize recording service.

        Args:
            platform: Platform providing capture streams
            config: Application configuration (defaults when None)
            scheduler: Frame scheduler for the level monitor
            encoder_factory: Builds the encoder for the recordable stream
            publisher: Lifecycle event publisher
            clock: Monotonic time source in seconds
        """
        self.config = config or RecorderConfig()
        self.acquirer = SourceAcquirer(platform)
        self.graph = AudioGraph(
            sample_rate=self.config.get('audio.sample_rate', 44100),
            channels=self.config.get('audio.channels', 2),
            fft_size=self.config.get('analysis.fft_size', 2048),
            smoothing_time_constant=self.config.get('analysis.smoothing_time_constant', 0.8),
        )
        self.monitor = LevelMonitor(
            self.graph,
            scheduler or AsyncioFrameScheduler(self.config.get('monitor.frame_rate', 60)),
        )
        self.encoder_options = EncoderOptions(
            mime_type=self.config.get('encoder.mime_type', 'audio/wav'),
            channels=self.config.get('encoder.channels', 2),
            sample_rate=self.config.get('encoder.sample_rate', 44100),
        )
        self.encoder_factory = encoder_factory or WavEncoder
        self.publisher = publisher or SessionPublisher(self.config.get('events.topic', 'session.lifecycle'))
        self.clock = clock

        self.state = RecordingState.IDLE
        self.audio_source: Optional[AudioSource] = None
        self.microphone_stream: Optional[CaptureStream] = None
        self.system_stream: Optional[CaptureStream] = None
        self.combined_stream: Optional[CaptureStream] = None
        self.encoder: Optional[WavEncoder] = None

        self._starting = False
        self._generation = 0
        self._start_time = 0.0
        self._recorded_seconds = 0.0

    @property
    def microphone_analyser(self) -> Optional[AnalyserNode]:
        return self.graph.analyser("microphone")

    @property
    def system_analyser(self) -> Optional[AnalyserNode]:
        return self.graph.analyser("system")

    def add_levels_observer(self, observer: LevelsObserver) -> None:
        self.monitor.add_levels_observer(observer)

    def add_waveform_observer(self, observer: WaveformObserver) -> None:
        self.monitor.add_waveform_observer(observer)

    def remove_observer(self, observer: Callable) -> None:
        self.monitor.remove_observer(observer)

    async def start(self,
                    source: Union[AudioSource, str],
                    microphone_id: Optional[str] = None,
                    system_source_id: Optional[str] = None) -> None:
        """Acquire the requested sources and start recording.

        Steps run strictly in order: microphone, system source, mix,
        encoder, monitoring.

        Raises:
            RecordingAlreadyActive: a recording is starting or running
            AudioCaptureError: acquisition failed; nothing stays allocated
        """
        if self._starting or self.state in (RecordingState.RECORDING, RecordingState.PAUSED):
            raise RecordingAlreadyActive()

        source = AudioSource(source)
        self._starting = True
        generation = self._generation
        try:
            self._start_time = self.clock()
            self._recorded_seconds = 0.0
            self.audio_source = source

            if source.uses_microphone:
                self.microphone_stream = await self.acquirer.acquire_microphone(microphone_id)
                self._ensure_not_aborted(generation)
                self.graph.attach_analysis(self.microphone_stream, "microphone")

            if source.uses_system:
                self.system_stream = await self.acquirer.acquire_system_source(system_source_id)
                self._ensure_not_aborted(generation)
                self.graph.attach_analysis(self.system_stream, "system")

            if source is AudioSource.BOTH:
                self.combined_stream = self.graph.merge_active()
            else:
                self.combined_stream = self.microphone_stream or self.system_stream

            if self.combined_stream is None:
                raise AcquisitionFailed("Failed to setup audio stream")

            self.encoder = self.encoder_factory(self.combined_stream, self.encoder_options)
            self.encoder.start()
            self.monitor.start()
            self.state = RecordingState.RECORDING

        except Exception as e:
            logger.error(f"Error starting recording: {e}")
            self._cleanup()
            self.state = RecordingState.IDLE
            self.audio_source = None
            self.publisher.publish("error", error=str(e), source=source.value)
            raise
        finally:
            self._starting = False

        logger.info(f"Started recording from {source.value}")
        self.publisher.publish("started", source=source.value,
                               microphone_id=microphone_id, system_source_id=system_source_id)

    def _ensure_not_aborted(self, generation: int) -> None:
        if generation != self._generation:
            raise AcquisitionFailed("Recording was cancelled while the audio source was opening")

    def pause(self) -> None:
        """Pause recording. Does nothing unless currently recording."""
        if self.state is not RecordingState.RECORDING or not self.encoder:
            return
        self._recorded_seconds += self.clock() - self._start_time
        self.encoder.pause()
        self.state = RecordingState.PAUSED
        logger.info("Recording paused")
        self.publisher.publish("paused", duration_seconds=self._recorded_seconds)

    def resume(self) -> None:
        """Resume recording. Does nothing unless currently paused."""
        if self.state is not RecordingState.PAUSED or not self.encoder:
            return
        self._start_time = self.clock()
        self.encoder.resume()
        self.state = RecordingState.RECORDING
        logger.info("Recording resumed")
        self.publisher.publish("resumed", duration_seconds=self._recorded_seconds)

    async def stop(self) -> bytes:
        """Finalize the encoder, release every resource and return the WAV payload.

        Raises:
            NoActiveRecording: there is no encoder to finalize
        """
        if not self.encoder:
            raise NoActiveRecording()

        if self.state is RecordingState.RECORDING:
            self._recorded_seconds += self.clock() - self._start_time
        encoder, self.encoder = self.encoder, None
        try:
            payload = await encoder.finalize()
        finally:
            encoder.destroy()
            self._cleanup()
            self.state = RecordingState.STOPPED

        logger.info(f"Recording stopped: {self._recorded_seconds:.2f}s, {len(payload)} bytes")
        self.publisher.publish("stopped", duration_seconds=self._recorded_seconds,
                               size_bytes=len(payload))
        return payload

    def current_duration(self) -> float:
        """Recorded time in seconds, excluding pauses. 0 before the first start.

        While recording this is ``now - start + accumulated``. While paused or
        stopped it returns the accumulated total unchanged, so the reading does
        not keep growing across a pause or after stop.
        """
        if self.state is RecordingState.RECORDING:
            return self.clock() - self._start_time + self._recorded_seconds
        return self._recorded_seconds

    def abort(self) -> None:
        """Discard the current recording, including one that is still starting."""
        self._cleanup()
        if self.state in (RecordingState.RECORDING, RecordingState.PAUSED):
            self.state = RecordingState.STOPPED

    def _cleanup(self) -> None:
        """Release everything acquired. Safe on partial state and when repeated."""
        self._generation += 1
        self.monitor.cancel()

        for stream in (self.microphone_stream, self.system_stream, self.combined_stream):
            if stream is not None:
                for track in stream.get_tracks():
                    track.stop()
        self.microphone_stream = None
        self.system_stream = None
        self.combined_stream = None

        self.graph.reset()

        if self.encoder:
            self.encoder.destroy()
            self.encoder = None

    def close(self) -> None:
        """Release everything and close the audio context."""
        self.abort()
        self.graph.close()
        logger.info("RecordingService closed")
