"""
yt-dlp option building for playlist-library.

Both extractor calls per playlist (the flat metadata query and the fetch
batch) share one set of throttling and authentication options derived from
ExtractorConfig. The fetch batch adds format selection, the library output
template, the download archive and sidecar generation.

Usage:
    from playlist_library.extractor.options import build_fetch_options

    options = build_fetch_options(config, outtmpl, archive=str(archive_path))
    with YoutubeDL(options) as ydl:
        ydl.download([url])
"""

import random
from typing import Any

from yt_dlp.utils import parse_bytes

from playlist_library.core.config import ExtractorConfig, parse_retry_sleep
from playlist_library.core.logger import get_logger

logger = get_logger(__name__)


class YtDlpLogger:
    """
    Logger object handed to yt-dlp.

    yt-dlp prints to stdout/stderr unless given a logger. This forwards its
    messages into our logging tree instead: chatter goes to DEBUG (only in
    the full log file unless --verbose), warnings and errors keep their
    level. Per-track errors inside a fetch batch show up here and the batch
    keeps going.

    Attributes:
        last_error: The most recent error message, for summaries.
    """

    def __init__(self) -> None:
        self.last_error: str | None = None

    def debug(self, msg: str) -> None:
        """yt-dlp routes both debug and info output through here."""
        logger.debug(f"yt-dlp: {msg.removeprefix('[debug] ')}")

    def info(self, msg: str) -> None:
        logger.debug(f"yt-dlp: {msg}")

    def warning(self, msg: str) -> None:
        logger.warning(f"yt-dlp: {msg}")

    def error(self, msg: str) -> None:
        self.last_error = msg
        logger.error(f"yt-dlp: {msg}")


def build_common_options(
    config: ExtractorConfig,
    yt_logger: YtDlpLogger | None = None
) -> dict[str, Any]:
    """
    Build the options shared by every extractor invocation.

    Args:
        config: Extractor tuning.
        yt_logger: Logger object to attach. A fresh one is made if None.

    Returns:
        Dictionary of yt-dlp options.

    Note:
        When request spacing is a range, one value is sampled per call,
        i.e. per extractor invocation.
    """
    low, high = config.sleep_requests
    options: dict[str, Any] = {
        # Quiet mode (we handle our own logging)
        "quiet": True,
        "noprogress": True,
        "logger": yt_logger or YtDlpLogger(),
        "encoding": "UTF-8",

        # Retry and throttling
        "extractor_retries": config.retries,
        "sleep_interval_requests": low if low == high else random.uniform(low, high),
    }

    if config.retry_sleep:
        schedule = parse_retry_sleep(config.retry_sleep)
        options["retry_sleep_functions"] = {schedule.retry_type: schedule}

    if config.limit_rate:
        options["ratelimit"] = parse_bytes(config.limit_rate)

    if config.cookie_file is not None:
        options["cookiefile"] = str(config.cookie_file)

    return options


def build_resolve_options(
    config: ExtractorConfig,
    yt_logger: YtDlpLogger | None = None
) -> dict[str, Any]:
    """
    Build options for the flat, metadata-only playlist query.

    Entries are listed with their id and title only; nothing is fetched.
    """
    options = build_common_options(config, yt_logger)
    options.update({
        "extract_flat": "in_playlist",
        "skip_download": True,
    })
    return options


def build_fetch_options(
    config: ExtractorConfig,
    outtmpl: str,
    archive: str | set[str],
    yt_logger: YtDlpLogger | None = None
) -> dict[str, Any]:
    """
    Build options for the per-playlist fetch batch.

    Args:
        config: Extractor tuning.
        outtmpl: Output template bound to the library's original/ folder.
        archive: Path of the archive file, or an in-memory set of archive
                 records. yt-dlp appends to a file path itself; a set is
                 updated in place instead.
        yt_logger: Logger object to attach.

    Returns:
        Dictionary of yt-dlp options.

    Sidecars:
        - <name>.info.json (structured metadata, read for tags)
        - <name>.jpg (artwork, converted from whatever the source serves)
    """
    options = build_common_options(config, yt_logger)
    options.update({
        # Best available audio, falling back to best combined stream
        "format": "bestaudio/best",
        "outtmpl": outtmpl,

        # Dedup: ids recorded in the archive are not fetched again
        "download_archive": archive,
        "overwrites": False,
        "continuedl": True,

        # One failing track must not abort the batch
        "ignoreerrors": True,

        # Sidecars
        "writeinfojson": True,
        "writethumbnail": True,

        "postprocessors": [
            {
                "key": "FFmpegThumbnailsConvertor",
                "format": "jpg",
                "when": "before_dl",
            },
            {
                "key": "FFmpegMetadata",
                "add_metadata": True,
                "add_chapters": False,
            },
        ],
    })
    return options
