"""Command line entry point for recordmix."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.progress_bar import ProgressBar

from . import __version__
from .audio.errors import AudioCaptureError
from .audio.pyaudio_platform import PyAudioPlatform
from .config import RecorderConfig
from .models.audio import AudioLevels, AudioSource
from .services.recording_service import RecordingService
from .storage.recording_store import RecordingStore

logger = logging.getLogger(__name__)

FILE_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
CONSOLE_LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def format_duration(seconds: float) -> str:
    """Format a duration as MM:SS."""
    total_seconds = int(seconds)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


class RecorderApp:
    """Terminal host for a recording session: live meters and saving."""

    def __init__(self, config_path: Optional[str] = None, log_level: Optional[str] = None):
        self.config = RecorderConfig(config_path)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.console = Console()
        self.platform = PyAudioPlatform(
            sample_rate=self.config.get('audio.sample_rate', 44100),
            channels=self.config.get('audio.channels', 2),
            chunk_size=self.config.get('audio.chunk_size', 1024),
        )
        self.service = RecordingService(self.platform, self.config)
        self.store = RecordingStore(self.config.get_recordings_directory())
        self.levels = AudioLevels()
        self.service.add_levels_observer(self._on_levels)

    def _on_levels(self, levels: AudioLevels) -> None:
        self.levels = levels

    def _render(self) -> Table:
        table = Table.grid(padding=(0, 1))
        table.add_row("🔴 REC", format_duration(self.service.current_duration()))
        table.add_row("Microphone", ProgressBar(total=100, completed=self.levels.microphone, width=40))
        table.add_row("System", ProgressBar(total=100, completed=self.levels.system, width=40))
        return table

    async def list_devices(self) -> None:
        devices = await self.service.acquirer.list_microphones()
        if not devices:
            self.console.print("No microphones available", style="yellow")
        for device in devices:
            self.console.print(f"{device.device_id}\t{device.label}")

    async def list_sources(self) -> None:
        sources = await self.service.acquirer.list_system_sources()
        if not sources:
            self.console.print("No system audio sources available", style="yellow")
        for source in sources:
            self.console.print(f"{source.id}\t{source.name}")

    async def record(self, source: str, microphone_id: Optional[str], system_source_id: Optional[str],
                     duration: int, output: Optional[str]) -> Optional[str]:
        await self.service.start(source, microphone_id, system_source_id)
        try:
            with Live(self._render(), console=self.console, refresh_per_second=10) as live:
                loop = asyncio.get_running_loop()
                deadline = loop.time() + duration
                while loop.time() < deadline:
                    await asyncio.sleep(0.1)
                    live.update(self._render())
        finally:
            payload = await self.service.stop()

        result = self.store.save_recording(payload, output)
        if not result.success:
            raise RuntimeError(result.error or "Recording was not saved")
        self.console.print(f"✅ Saved {format_duration(self.service.current_duration())} to {result.path}",
                           style="green")
        return result.path

    def cleanup(self) -> None:
        self.service.close()
        self.platform.close()


def setup_logging(config: RecorderConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/recordmix.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    handlers = [file_handler]

    # Console only shows warnings while the live meter is drawn
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter(CONSOLE_LOG_FORMAT))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info(f"recordmix {__version__} logging to {log_file_path} at {level}")


async def run(args: argparse.Namespace) -> None:
    app = RecorderApp(args.config, args.log_level)
    try:
        if args.list_devices:
            await app.list_devices()
        elif args.list_sources:
            await app.list_sources()
        else:
            await app.record(args.source, args.mic, args.system_source, args.duration, args.output)
    finally:
        app.cleanup()


def main() -> None:
    """Main entry point for recordmix."""
    parser = argparse.ArgumentParser(
        description="recordmix - record microphone and system audio to WAV"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config)"
    )

    parser.add_argument(
        "--source",
        type=str,
        default=AudioSource.MICROPHONE.value,
        choices=[source.value for source in AudioSource],
        help="Which inputs to record (default: microphone)"
    )

    parser.add_argument("--mic", type=str, help="Microphone device id (default: system default)")
    parser.add_argument("--system-source", type=str, help="System audio source id, see --list-sources")

    parser.add_argument(
        "--duration",
        type=int,
        default=10,
        help="Recording duration in seconds (default: 10)"
    )

    parser.add_argument("--output", type=str, help="Output filename (default: timestamped)")
    parser.add_argument("--list-devices", action="store_true", help="List microphones and exit")
    parser.add_argument("--list-sources", action="store_true", help="List system audio sources and exit")

    parser.add_argument(
        "--version",
        action="version",
        version=f"recordmix v{__version__}"
    )

    args = parser.parse_args()

    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except AudioCaptureError as e:
        print(f"❌ {e}")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
