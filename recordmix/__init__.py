"""recordmix - capture, mix and monitor microphone and system audio."""

__version__ = "0.1.0"
