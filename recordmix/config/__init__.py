"""Simple YAML configuration loader for recordmix."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "audio": {
        "sample_rate": 44100,
        "channels": 2,
        "chunk_size": 1024,
    },
    "analysis": {
        "fft_size": 2048,
        "smoothing_time_constant": 0.8,
    },
    "monitor": {
        "frame_rate": 60,
    },
    "encoder": {
        "mime_type": "audio/wav",
        "sample_rate": 44100,
        "channels": 2,
    },
    "events": {
        "topic": "session.lifecycle",
    },
    "storage": {
        "recordings_directory": "recordings",
    },
    "logging": {
        "level": "INFO",
        "file_path": "logs/recordmix.log",
        "console_output": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


class RecorderConfig:
    """recordmix configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used and relative paths resolve against the
                        current directory.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is None:
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file on top of the defaults."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not loaded:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")

        config = _merge(copy.deepcopy(DEFAULT_CONFIG), loaded)
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        recordings_dir = config['storage'].get('recordings_directory')
        if recordings_dir and not os.path.isabs(recordings_dir):
            config['storage']['recordings_directory'] = str(config_dir / recordings_dir)

        log_path = config['logging'].get('file_path')
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``analysis.fft_size``; ``default`` when absent."""
        value = self.config
        for key in key_path.split('.'):
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value

    def set(self, key_path: str, value: Any) -> None:
        """Override a dotted key for this process, creating sections as needed."""
        *sections, name = key_path.split('.')
        section = self.config
        for key in sections:
            section = section.setdefault(key, {})
        section[name] = value
        logger.debug(f"Config override {key_path}={value!r}")

    def get_recordings_directory(self) -> str:
        """Get recordings directory path."""
        recordings_dir = self.get('storage.recordings_directory', 'recordings')
        return str(Path(recordings_dir).absolute())
