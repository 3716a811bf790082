"""Main application entry point for SpeechCoach."""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .analysis.feedback import clarity_label, format_duration, pace_label
from .config import SpeechCoachConfig
from .errors import SpeechCoachError
from .models.events import Notification
from .models.session import RecordingState, SessionRecord
from .services.session_recorder import NOTIFICATION_TOPIC, SessionRecorder
from .services.upload_service import UploadAnalyzer
from .storage.history_store import HistoryStore

logger = logging.getLogger(__name__)

NOTIFICATION_STYLES = {"info": "cyan", "warning": "yellow", "error": "bold red"}


class CoachApp:
    """Wires configuration, storage and services together for the CLI."""

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        self.config = SpeechCoachConfig(config_path)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.console = Console()
        self.history_store = HistoryStore(self.config.get_data_directory())
        pub.subscribe(self.on_notification, NOTIFICATION_TOPIC)

    def on_notification(self, notification: Notification) -> None:
        style = NOTIFICATION_STYLES.get(notification.level, "white")
        text = notification.title
        if notification.message:
            text = f"{text}: {notification.message}"
        self.console.print(f"[{style}]{escape(text)}[/{style}]")

    def record(self, duration: Optional[int], title: Optional[str]) -> int:
        recorder = SessionRecorder.from_config(self.config, self.history_store)
        recorder.start(title)
        started = time.monotonic()
        try:
            while recorder.state is RecordingState.RECORDING:
                time.sleep(1)
                session = recorder.snapshot()
                metrics = session.metrics
                line = (f"{format_duration(session.elapsed_seconds)}  "
                        f"pace {metrics.pace_wpm} wpm ({pace_label(metrics.pace_wpm)})  "
                        f"clarity {metrics.clarity_percent}%  "
                        f"fillers {metrics.filler_count}  {metrics.tone_label}")
                if session.interim_segment:
                    line += f"  [dim]{escape(session.interim_segment)}[/dim]"
                self.console.print(line)
                if duration and time.monotonic() - started >= duration:
                    break
        except KeyboardInterrupt:
            pass
        finally:
            recorder.stop()

        # a forced stop (device lost) ran on another thread; its record is kept here
        record = recorder.last_record

        if record is not None:
            self.print_record(record)
        if recorder.unsaved_records:
            return 1
        return 0

    def upload(self, path: str, title: Optional[str]) -> int:
        analyzer = UploadAnalyzer.from_config(self.config, self.history_store)
        record = analyzer.analyze_file(path, title)
        if record is None:
            self.console.print("No speech was recognized in the file.")
            return 1
        self.print_record(record)
        return 0

    def history(self) -> int:
        records = self.history_store.list()
        if not records:
            self.console.print("No sessions recorded yet.")
            return 0

        table = Table(title="Speech History")
        for column in ("ID", "Title", "Date", "Duration", "Type", "Rating",
                       "Fillers", "Clarity", "Pace"):
            table.add_column(column)
        for record in records:
            table.add_row(
                str(record.id),
                escape(record.title),
                record.created_at.strftime("%b %d, %Y"),
                record.duration_label,
                record.source_type.value,
                record.rating.value,
                str(record.metrics.filler_count),
                f"{record.metrics.clarity_percent}%",
                f"{record.metrics.pace_wpm} wpm",
            )
        self.console.print(table)
        return 0

    def delete(self, record_id: int) -> int:
        if self.history_store.delete(record_id):
            self.console.print(f"Deleted session {record_id}")
            return 0
        self.console.print(f"[yellow]No session with id {record_id}[/yellow]")
        return 1

    def print_record(self, record: SessionRecord) -> None:
        metrics = record.metrics
        table = Table(title=f"{escape(record.title)} ({record.duration_label})", show_header=False)
        table.add_row("Rating", record.rating.value)
        table.add_row("Pace", f"{metrics.pace_wpm} wpm ({pace_label(metrics.pace_wpm)})")
        table.add_row("Clarity", f"{metrics.clarity_percent}% ({clarity_label(metrics.clarity_percent)})")
        table.add_row("Filler words", str(metrics.filler_count))
        table.add_row("Tone", metrics.tone_label)
        table.add_row("Confidence", f"{metrics.confidence_percent}%")
        for tip in record.feedback:
            table.add_row("Tip", escape(tip))
        self.console.print(table)


def setup_logging(config: SpeechCoachConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/speechcoach.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("SpeechCoach starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="speechcoach",
        description="SpeechCoach - live speech coaching metrics",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for speechcoach.yaml)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"SpeechCoach v{__version__}"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    record = commands.add_parser("record", help="Record a live session from the microphone")
    record.add_argument("--duration", type=int, help="Stop automatically after this many seconds")
    record.add_argument("--title", type=str, help="Session title")

    upload = commands.add_parser("upload", help="Analyze a pre-recorded 16-bit WAV file")
    upload.add_argument("path", type=str)
    upload.add_argument("--title", type=str, help="Session title")

    commands.add_parser("history", help="List past sessions, most recent first")

    delete = commands.add_parser("delete", help="Delete a past session")
    delete.add_argument("id", type=int)

    return parser


def main(argv: Optional[list] = None) -> None:
    """Main entry point for SpeechCoach."""
    args = build_parser().parse_args(argv)

    try:
        app = CoachApp(args.config, args.log_level)
        if args.command == "record":
            code = app.record(args.duration, args.title)
        elif args.command == "upload":
            code = app.upload(args.path, args.title)
        elif args.command == "history":
            code = app.history()
        else:
            code = app.delete(args.id)
    except SpeechCoachError as e:
        print(f"Error: {e}", file=sys.stderr)
        logging.error(f"Application error: {e}")
        sys.exit(1)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)
    sys.exit(code)


if __name__ == "__main__":
    main()
