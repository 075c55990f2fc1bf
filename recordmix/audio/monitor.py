"""Per-frame level and waveform monitoring."""

import logging
from typing import Any, Callable, List, Optional

import numpy as np

from ..models.audio import AudioLevels
from .graph import AnalyserNode, AudioGraph
from .meter import average_volume
from .scheduler import FrameScheduler

logger = logging.getLogger(__name__)

LevelsObserver = Callable[[AudioLevels], None]
WaveformObserver = Callable[[np.ndarray], None]


class LevelMonitor:
    """Samples the graph's analysers once per frame and notifies observers.

    Each tick schedules the next one before notifying, so a failing
    observer does not stop monitoring. Observers run on the scheduling
    path and must not block.
    """

    def __init__(self, graph: AudioGraph, scheduler: FrameScheduler):
        self.graph = graph
        self.scheduler = scheduler
        self.levels_observers: List[LevelsObserver] = []
        self.waveform_observers: List[WaveformObserver] = []
        self.running = False
        self._handle: Optional[Any] = None

    def add_levels_observer(self, observer: LevelsObserver) -> None:
        if observer not in self.levels_observers:
            self.levels_observers.append(observer)

    def add_waveform_observer(self, observer: WaveformObserver) -> None:
        if observer not in self.waveform_observers:
            self.waveform_observers.append(observer)

    def remove_observer(self, observer: Callable) -> None:
        for observers in (self.levels_observers, self.waveform_observers):
            if observer in observers:
                observers.remove(observer)

    def start(self) -> None:
        if self.running:
            return
        self.running = True
        self.tick()

    def cancel(self) -> None:
        """Stop monitoring; no tick runs after this returns."""
        self.running = False
        if self._handle is not None:
            self.scheduler.cancel_frame(self._handle)
            self._handle = None

    @staticmethod
    def _level(analyser: Optional[AnalyserNode]) -> float:
        if analyser is None:
            return 0.0
        return average_volume(analyser.get_byte_frequency_data())

    def tick(self) -> Optional[AudioLevels]:
        self._handle = None
        if not self.running:
            return None

        microphone = self.graph.analyser("microphone")
        system = self.graph.analyser("system")
        levels = AudioLevels(microphone=self._level(microphone), system=self._level(system))

        # Only one waveform is displayed; the microphone wins when both exist
        waveform_source = microphone or system
        waveform = waveform_source.get_float_time_domain_data() if waveform_source else None

        self._handle = self.scheduler.request_frame(self.tick)

        if waveform is not None:
            for observer in list(self.waveform_observers):
                observer(waveform)
        for observer in list(self.levels_observers):
            observer(levels)
        return levels
