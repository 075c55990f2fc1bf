"""Audio capture, mixing and monitoring module."""

from .platform import AudioPlatform, AudioTrack, CaptureStream
from .acquirer import SourceAcquirer
from .graph import AudioGraph, AnalyserNode, GainNode, MixDestination
from .monitor import LevelMonitor
from .scheduler import FrameScheduler, AsyncioFrameScheduler, ManualFrameScheduler
from .encoder import WavEncoder, EncoderOptions

__all__ = [
    'AudioPlatform',
    'AudioTrack',
    'CaptureStream',
    'SourceAcquirer',
    'AudioGraph',
    'AnalyserNode',
    'GainNode',
    'MixDestination',
    'LevelMonitor',
    'FrameScheduler',
    'AsyncioFrameScheduler',
    'ManualFrameScheduler',
    'WavEncoder',
    'EncoderOptions',
]
