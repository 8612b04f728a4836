"""
Logging configuration for playlist-library.

One run writes to four places:
    console                      INFO (DEBUG with --verbose), printed above progress bars
    logs/log_full_<ts>.log       everything from DEBUG up
    logs/log_errors_<ts>.log     ERROR and CRITICAL only
    logs/track_failures_<ts>.log tracks missing after fetch or failed to convert

Usage:
    from playlist_library.core.logger import setup_logging, get_logger

    setup_logging(output_dir)
    logger = get_logger(__name__)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO

from tqdm import tqdm

from playlist_library.core.exceptions import OutputError


FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attribute set on records produced by log_track_failure()
TRACK_FAILURE_ATTR = "track_failure"


class Colors:
    """ANSI escape sequences used by the console formatter."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    WHITE = "\033[37m"


class ColoredConsoleFormatter(logging.Formatter):
    """Short `LEVEL: message` lines with the level name colored."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        return f"{color}{record.levelname}{Colors.RESET}: {record.getMessage()}"


class TqdmLoggingHandler(logging.StreamHandler):
    """
    Console handler that routes output through tqdm.write().

    rich and tqdm bars redraw their line in place; writing through tqdm
    keeps log lines above the bar instead of torn through it.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__(stream)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
        except Exception:
            self.handleError(record)


class TrackFailureHandler(logging.FileHandler):
    """
    Writes the track failures report.

    Only records carrying a `track_failure` attribute (see
    log_track_failure) are written, one block per failure:

        [fetch] Some DJ - Summer Mix _98765_
        1234567 - Song Title
        Not present in library after fetch

    The stage is "fetch" or the target format that failed.
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__(report_path, mode="w", encoding="utf-8")
        self.addFilter(lambda record: hasattr(record, TRACK_FAILURE_ATTR))

    def format(self, record: logging.LogRecord) -> str:
        failure = getattr(record, TRACK_FAILURE_ATTR)
        return (
            f"[{failure['stage']}] {failure['playlist']}\n"
            f"{failure['track_id']} - {failure['title']}\n"
            f"{failure['reason']}\n"
        )


class ErrorOnlyFilter(logging.Filter):
    """Pass ERROR and CRITICAL records only."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def _file_handler(path: Path, log_filter: Optional[logging.Filter] = None) -> logging.FileHandler:
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    if log_filter is not None:
        handler.addFilter(log_filter)
    return handler


def setup_logging(output_dir: Path, verbose: bool = False) -> Path:
    """
    Configure the root logger for one run.

    Replaces any handlers already on the root logger. Call once from the
    main thread before any worker threads start.

    Args:
        output_dir: Library root; logs go to output_dir/logs.
        verbose: Show DEBUG on the console (extractor and ffmpeg chatter).

    Returns:
        The logs directory.

    Raises:
        OutputError: If the logs directory or a log file cannot be created.
    """
    logs_dir = output_dir / "logs"
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handlers = [
            _file_handler(logs_dir / f"log_full_{timestamp}.log"),
            _file_handler(logs_dir / f"log_errors_{timestamp}.log", ErrorOnlyFilter()),
            TrackFailureHandler(logs_dir / f"track_failures_{timestamp}.log"),
        ]
    except OSError as e:
        raise OutputError(
            f"Failed to create log directory: {logs_dir}",
            details={"path": str(logs_dir), "original_error": str(e)}
        ) from e

    console = TqdmLoggingHandler()
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(ColoredConsoleFormatter())

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    for handler in [console] + file_handlers:
        root.addHandler(handler)

    return logs_dir


def get_logger(name: str) -> logging.Logger:
    """Module logger; silent until setup_logging() has run."""
    return logging.getLogger(name)


def log_track_failure(
    logger: logging.Logger,
    playlist: str,
    track_id: str,
    title: str,
    stage: str,
    reason: str
) -> None:
    """
    Log a WARNING for a track that is missing or failed to convert.

    The record also lands in the track failures report.

    Args:
        logger: Logger of the calling module.
        playlist: Playlist folder name.
        track_id: Extractor id of the track.
        title: Track title.
        stage: "fetch", or the target format that failed.
        reason: Short description.
    """
    failure = {
        "playlist": playlist,
        "track_id": track_id,
        "title": title,
        "stage": stage,
        "reason": reason,
    }
    logger.warning(
        f"[{stage}] {track_id} - {title}: {reason}",
        extra={TRACK_FAILURE_ATTR: failure}
    )


def shutdown_logging() -> None:
    """Flush, close and detach every root handler."""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        try:
            handler.flush()
            handler.close()
        except (OSError, ValueError):
            # Stream already closed
            continue
