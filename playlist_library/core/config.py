"""
Configuration management for playlist-library.

This module handles loading, validating, and providing access to the
application configuration. The result is one frozen Config value that is
built once at startup and passed explicitly into every component.

Configuration sources (lowest to highest precedence):
    1. Built-in defaults
    2. config.yaml (explicit path, or config.yaml in the working directory)
    3. Environment variables, after loading a .env file with python-dotenv
       (DOTENV_PATH if set, else ./.env; variables already set win)
    4. CLI overrides, given as dotted keys ("output.directory")

Example config.yaml:
    input_file: "playlists.txt"

    output:
      directory: "~/Music/PlaylistLibrary"
      # library_directory: defaults to {directory}/library
      # archive_directory: defaults to {directory}/.archive
      # playlists_directory: defaults to {directory}/playlists

    extractor:
      cookie_file: null
      retries: 10            # or "infinite"
      retry_sleep: "exp=2:10:120"
      sleep_requests: "1-3"  # seconds, or a MIN-MAX (or MIN:MAX) range
      limit_rate: "1M"
      filename_template: "%(id)s - %(title)s"

    conversion:
      formats: [original, mp3, wav, flac]
      mp3_quality: "0"
      album_from: [playlist_title, title]
      ffmpeg_bin: ffmpeg
      threads: 1

    playlists:
      order: natural         # or "playlist"
      pause_between: 2
"""

import math
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv
from yt_dlp.utils import parse_bytes

from playlist_library.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

SUPPORTED_FORMATS = ("original", "mp3", "wav", "flac")
PLAYLIST_ORDERS = ("natural", "playlist")
RETRY_SLEEP_TYPES = ("http", "fragment", "file_access", "extractor")

# Environment variable -> dotted configuration key
ENV_KEYS = {
    "INPUT_FILE": "input_file",
    "OUTPUT_DIR": "output.directory",
    "LIBRARY_DIR": "output.library_directory",
    "ARCHIVE_DIR": "output.archive_directory",
    "PLAYLISTS_DIR": "output.playlists_directory",
    "COOKIES_FILE": "extractor.cookie_file",
    "EXTRACTOR_RETRIES": "extractor.retries",
    "RETRY_SLEEP": "extractor.retry_sleep",
    "SLEEP_REQUESTS": "extractor.sleep_requests",
    "LIMIT_RATE": "extractor.limit_rate",
    "LIB_FILENAME_TEMPLATE": "extractor.filename_template",
    "FORMATS": "conversion.formats",
    "MP3_QUALITY": "conversion.mp3_quality",
    "ALBUM_FROM": "conversion.album_from",
    "FFMPEG_BIN": "conversion.ffmpeg_bin",
    "THREADS": "conversion.threads",
    "PLAYLIST_ORDER": "playlists.order",
    "PAUSE_BETWEEN": "playlists.pause_between",
}

DEFAULTS: dict[str, Any] = {
    "input_file": None,
    "urls": [],
    "output": {
        "directory": None,
        "library_directory": None,
        "archive_directory": None,
        "playlists_directory": None,
    },
    "extractor": {
        "cookie_file": None,
        "retries": 10,
        "retry_sleep": "exp=2:10:120",
        "sleep_requests": "2",
        "limit_rate": None,
        "filename_template": "%(id)s - %(title)s",
    },
    "conversion": {
        "formats": list(SUPPORTED_FORMATS),
        "mp3_quality": "0",
        "album_from": ["playlist_title", "title"],
        "ffmpeg_bin": "ffmpeg",
        "threads": 1,
    },
    "playlists": {
        "order": "natural",
        "pause_between": 2,
    },
}

_SLEEP_RANGE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:[-:]\s*(\d+(?:\.\d+)?))?\s*$")
_SLEEP_EXPR_RE = re.compile(
    r"(?:(linear|exp)=)?(\d+(?:\.\d+)?)(?::(\d+(?:\.\d+)?)?)?(?::(\d+(?:\.\d+)?))?"
)


@dataclass(frozen=True)
class OutputConfig:
    """
    Output directory configuration.

    Attributes:
        directory: Output root. Logs go to {directory}/logs.
        library_directory: Shared library (original/ plus one folder per format).
        archive_directory: Holds the download archive file (original.txt).
        playlists_directory: Where the .m3u8 playlist files are written.
    """
    directory: Path
    library_directory: Path
    archive_directory: Path
    playlists_directory: Path


@dataclass(frozen=True)
class ExtractorConfig:
    """
    Extractor (yt-dlp) tuning shared by the resolve and fetch steps.

    Attributes:
        cookie_file: Optional Netscape cookies.txt for authenticated access.
        retries: Extractor retry count, or math.inf for "infinite".
        retry_sleep: Backoff expression, "[TYPE:]linear=S[:E[:STEP]]" or
                     "[TYPE:]exp=S[:E[:BASE]]" or a plain number of seconds.
        sleep_requests: (min, max) seconds between extraction requests.
                        Equal bounds mean a fixed delay.
        limit_rate: Optional bandwidth cap ("1M", "500K").
        filename_template: Output template for library originals, without
                           extension. Always contains %(id)s.
    """
    cookie_file: Path | None
    retries: float
    retry_sleep: str
    sleep_requests: tuple[float, float]
    limit_rate: str | None
    filename_template: str


@dataclass(frozen=True)
class ConversionConfig:
    """
    Format conversion configuration.

    Attributes:
        formats: Requested formats, a non-empty subset of SUPPORTED_FORMATS
                 in declaration order.
        mp3_quality: LAME variable-quality value passed as -q:a.
        album_from: Sidecar keys tried in order for the album tag.
        ffmpeg_bin: ffmpeg executable name or path.
        threads: Conversion worker threads (1 = sequential).
    """
    formats: tuple[str, ...]
    mp3_quality: str
    album_from: tuple[str, ...]
    ffmpeg_bin: str
    threads: int

    @property
    def converted_formats(self) -> tuple[str, ...]:
        """Requested formats that need a transcode (everything but 'original')."""
        return tuple(fmt for fmt in self.formats if fmt != "original")


@dataclass(frozen=True)
class PlaylistConfig:
    """
    Playlist emission configuration.

    Attributes:
        order: Entry ordering policy, "natural" or "playlist".
        pause_between: Seconds to sleep between playlists.
    """
    order: str
    pause_between: int


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Attributes:
        input_file: Optional path to the list of playlist URLs.
        urls: URLs given directly (e.g. with --url); read before input_file.
        output: Output directory settings.
        extractor: Extractor tuning.
        conversion: Format conversion settings.
        playlists: Playlist emission settings.

    Example:
        config = load_config()
        print(f"Library: {config.output.library_directory}")
        print(f"Formats: {', '.join(config.conversion.formats)}")
    """
    input_file: Path | None
    urls: tuple[str, ...]
    output: OutputConfig
    extractor: ExtractorConfig
    conversion: ConversionConfig
    playlists: PlaylistConfig


def load_config(
    config_path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None
) -> Config:
    """
    Load and validate configuration from all sources.

    Args:
        config_path: Optional explicit path to a config file. It must exist.
                     If None, config.yaml in the working directory is used
                     when present.
        overrides: Dotted keys with CLI values. None values are ignored so
                   unset CLI options never mask lower layers.
        environ: Environment mapping. Defaults to os.environ after the .env
                 file has been loaded into it.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is unreadable or invalid YAML, or
                     any value fails validation. The message names the field.

    Behavior:
        1. Start from DEFAULTS
        2. Merge the YAML file
        3. Merge environment variables listed in ENV_KEYS
        4. Merge CLI overrides
        5. Parse and validate each section

    Thread Safety:
        This function is NOT thread-safe. It should be called once at
        application startup, before any threads are created.
    """
    raw = _deep_copy(DEFAULTS)

    file_values = _read_config_file(config_path)
    _merge(raw, file_values)

    if environ is None:
        _load_dotenv_file()
        environ = os.environ

    for env_name, key in ENV_KEYS.items():
        value = environ.get(env_name)
        if value is not None and value.strip() != "":
            _set_dotted(raw, key, value)

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        _set_dotted(raw, key, value)

    output_config = _parse_output_config(raw["output"])
    return Config(
        input_file=_parse_optional_path(raw.get("input_file"), "input_file"),
        urls=_parse_urls(raw.get("urls")),
        output=output_config,
        extractor=_parse_extractor_config(raw["extractor"]),
        conversion=_parse_conversion_config(raw["conversion"]),
        playlists=_parse_playlist_config(raw["playlists"]),
    )


def load_playlist_urls(config: Config) -> list[str]:
    """
    Collect the playlist URLs to process, in order.

    URLs given directly come first, then the lines of the input file.
    Blank lines and lines starting with '#' are skipped.

    Args:
        config: Loaded configuration.

    Returns:
        list[str]: Playlist URLs in processing order.

    Raises:
        ConfigError: If the input file cannot be read, or no URL is found
                     at all.
    """
    urls = list(config.urls)

    if config.input_file is not None:
        try:
            with open(config.input_file, "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except OSError as e:
            raise ConfigError(
                f"Cannot read input file: {config.input_file}",
                details={"file_path": str(config.input_file), "original_error": str(e)}
            ) from e

        for line in lines:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            urls.append(line)

    if not urls:
        raise ConfigError(
            "No playlist URLs given. Set 'input_file' (INPUT_FILE, --input) or pass --url",
            details={"field": "input_file"}
        )

    return urls


@dataclass(frozen=True)
class RetrySleep:
    """
    Backoff schedule for one extractor retry type.

    Calling the instance with the retry number n (0-based) returns the
    number of seconds to sleep before that retry.

    Attributes:
        retry_type: "http", "fragment", "file_access" or "extractor".
        kind: "linear" or "exp".
        start: First delay.
        step: Increment per retry ("linear") or base ("exp").
        limit: Upper bound on the delay, or None.
    """
    retry_type: str
    kind: str
    start: float
    step: float
    limit: float | None

    def __call__(self, n: int) -> float:
        if self.kind == "exp":
            delay = self.start * (self.step ** n)
        else:
            delay = self.start + self.step * n
        return delay if self.limit is None else min(delay, self.limit)


def parse_retry_sleep(expr: str) -> RetrySleep:
    """
    Parse a retry sleep expression.

    Accepted forms:
        "5"                  -> fixed 5 seconds
        "linear=1:10:2"      -> 1, 3, 5, ... capped at 10
        "exp=2:10:120"       -> 2 * 120**n capped at 10
        "fragment:exp=1:20"  -> same, for a specific retry type

    Without a type prefix the schedule applies to "http" retries.

    Args:
        expr: The expression as written in the configuration.

    Returns:
        RetrySleep: The parsed schedule.

    Raises:
        ConfigError: If the expression cannot be parsed.
    """
    retry_type = "http"
    body = expr.strip()
    if ":" in body and body.split(":", 1)[0] in RETRY_SLEEP_TYPES:
        retry_type, body = body.split(":", 1)

    match = _SLEEP_EXPR_RE.fullmatch(body.strip())
    if match is None:
        raise ConfigError(
            f"Invalid retry sleep expression: '{expr}'",
            details={"field": "extractor.retry_sleep", "value": expr}
        )

    op, start, limit, step = match.groups()
    start_value = float(start)
    limit_value = float(limit) if limit else None

    if op == "exp":
        return RetrySleep(retry_type, "exp", start_value, float(step or 2), limit_value)

    default_step = start_value if (op or limit) else 0.0
    step_value = float(step) if step else default_step
    return RetrySleep(retry_type, "linear", start_value, step_value, limit_value)


def parse_sleep_requests(value: Any) -> tuple[float, float]:
    """
    Parse the request spacing value.

    Args:
        value: A number, or a string "N", "MIN-MAX" or "MIN:MAX".

    Returns:
        tuple[float, float]: (min, max) seconds; equal for a fixed value.

    Raises:
        ConfigError: If the value is negative, malformed, or MIN > MAX.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
        return float(value), float(value)

    match = _SLEEP_RANGE_RE.match(value) if isinstance(value, str) else None
    if match is None:
        raise ConfigError(
            f"Invalid request spacing: '{value}'. Use seconds or a MIN-MAX range",
            details={"field": "extractor.sleep_requests", "value": value}
        )

    low = float(match.group(1))
    high = float(match.group(2)) if match.group(2) else low
    if low > high:
        raise ConfigError(
            f"Invalid request spacing range: {low} > {high}",
            details={"field": "extractor.sleep_requests", "value": value}
        )
    return low, high


def _load_dotenv_file() -> None:
    """Load DOTENV_PATH (or ./.env) into os.environ without overriding."""
    dotenv_path = os.environ.get("DOTENV_PATH")
    if dotenv_path:
        load_dotenv(dotenv_path, override=False)
    else:
        load_dotenv(Path.cwd() / ".env", override=False)


def _read_config_file(config_path: Path | None) -> dict[str, Any]:
    """
    Read the YAML config file into a dictionary.

    An explicit path must exist; the implicit ./config.yaml is optional.
    """
    if config_path is None:
        candidate = Path.cwd() / CONFIG_FILENAME
        if not candidate.exists():
            return {}
        config_path = candidate
    elif not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    for section in ("output", "extractor", "conversion", "playlists"):
        if section in raw_config and not isinstance(raw_config[section], dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )

    return raw_config


def _deep_copy(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _deep_copy(v) for k, v in value.items()}
    if isinstance(value, list):
        return list(value)
    return value


def _merge(base: dict[str, Any], updates: dict[str, Any]) -> None:
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value


def _set_dotted(raw: dict[str, Any], key: str, value: Any) -> None:
    target = raw
    *parents, leaf = key.split(".")
    for part in parents:
        target = target.setdefault(part, {})
    target[leaf] = value


def _expand(value: str) -> Path:
    return Path(value.strip()).expanduser().resolve()


def _parse_optional_path(value: Any, field: str) -> Path | None:
    if value is None:
        return None
    if isinstance(value, Path):
        return value.expanduser().resolve()
    if not isinstance(value, str):
        raise ConfigError(
            f"'{field}' must be a string path or null",
            details={"field": field}
        )
    if not value.strip():
        return None
    return _expand(value)


def _parse_list(value: Any, separator: str, field: str) -> list[str]:
    """Accept a YAML list or a separator-delimited string."""
    if isinstance(value, str):
        items = value.split(separator)
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise ConfigError(
            f"'{field}' must be a list or a '{separator}'-separated string",
            details={"field": field, "value": value}
        )
    return [str(item).strip() for item in items if str(item).strip()]


def _parse_int(value: Any, field: str, minimum: int) -> int:
    if isinstance(value, bool):
        parsed = None
    elif isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        parsed = int(value.strip())
    else:
        parsed = None

    if parsed is None or parsed < minimum:
        qualifier = "positive" if minimum > 0 else "non-negative"
        raise ConfigError(
            f"'{field}' must be a {qualifier} integer",
            details={"field": field, "value": value}
        )
    return parsed


def _parse_urls(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = [value]
    return tuple(str(url).strip() for url in value if str(url).strip())


def _parse_output_config(output_section: dict[str, Any]) -> OutputConfig:
    """
    Parse and validate the output configuration section.

    Expands ~ and converts to absolute paths. Does NOT create any
    directory (that happens when the pipeline prepares the layout).

    Raises:
        ConfigError: If the output directory is missing or empty.
    """
    directory = output_section.get("directory")
    if isinstance(directory, Path):
        directory = str(directory)

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'output.directory' must be a non-empty string (OUTPUT_DIR, --out)",
            details={"field": "output.directory"}
        )

    root = _expand(directory)

    def sub_directory(key: str, default: Path) -> Path:
        path = _parse_optional_path(output_section.get(key), f"output.{key}")
        return path if path is not None else default

    return OutputConfig(
        directory=root,
        library_directory=sub_directory("library_directory", root / "library"),
        archive_directory=sub_directory("archive_directory", root / ".archive"),
        playlists_directory=sub_directory("playlists_directory", root / "playlists"),
    )


def _parse_extractor_config(section: dict[str, Any]) -> ExtractorConfig:
    """
    Parse and validate the extractor configuration section.

    Raises:
        ConfigError: If retries, retry sleep, request spacing, rate limit
                     or template are invalid, or the cookie file is missing.
    """
    raw_retries = section.get("retries")
    if isinstance(raw_retries, str) and raw_retries.strip().lower() in ("infinite", "inf"):
        retries = math.inf
    else:
        retries = _parse_int(raw_retries, "extractor.retries", minimum=1)

    retry_sleep = str(section.get("retry_sleep") or "").strip()
    if retry_sleep:
        parse_retry_sleep(retry_sleep)

    sleep_requests = parse_sleep_requests(section.get("sleep_requests"))

    limit_rate = section.get("limit_rate")
    if limit_rate is not None:
        limit_rate = str(limit_rate).strip() or None
    if limit_rate is not None and parse_bytes(limit_rate) is None:
        raise ConfigError(
            f"Invalid rate limit: '{limit_rate}'. Use e.g. 1M or 500K",
            details={"field": "extractor.limit_rate", "value": limit_rate}
        )

    template = section.get("filename_template")
    if not isinstance(template, str) or "%(id)s" not in template:
        raise ConfigError(
            "'extractor.filename_template' must contain %(id)s",
            details={"field": "extractor.filename_template", "value": template}
        )

    cookie_file = _parse_optional_path(section.get("cookie_file"), "extractor.cookie_file")
    if cookie_file is not None and not cookie_file.exists():
        raise ConfigError(
            f"Cookie file not found: {cookie_file}",
            details={"field": "extractor.cookie_file", "path": str(cookie_file)}
        )

    return ExtractorConfig(
        cookie_file=cookie_file,
        retries=retries,
        retry_sleep=retry_sleep,
        sleep_requests=sleep_requests,
        limit_rate=limit_rate,
        filename_template=template.strip(),
    )


def _parse_conversion_config(section: dict[str, Any]) -> ConversionConfig:
    """
    Parse and validate the conversion configuration section.

    Formats are de-duplicated and kept in SUPPORTED_FORMATS order.

    Raises:
        ConfigError: If formats are empty or unknown, or threads is not
                     a positive integer.
    """
    requested = [fmt.lower() for fmt in _parse_list(section.get("formats"), ",", "conversion.formats")]
    for fmt in requested:
        if fmt not in SUPPORTED_FORMATS:
            raise ConfigError(
                f"'conversion.formats' contains unknown format '{fmt}'",
                details={"field": "conversion.formats", "value": fmt}
            )
    if not requested:
        raise ConfigError(
            "'conversion.formats' must name at least one format",
            details={"field": "conversion.formats"}
        )

    formats = tuple(fmt for fmt in SUPPORTED_FORMATS if fmt in requested)

    album_from = tuple(_parse_list(section.get("album_from"), "|", "conversion.album_from"))
    if not album_from:
        album_from = ("playlist_title", "title")

    mp3_quality = str(section.get("mp3_quality") or "0").strip() or "0"

    ffmpeg_bin = str(section.get("ffmpeg_bin") or "ffmpeg").strip()

    return ConversionConfig(
        formats=formats,
        mp3_quality=mp3_quality,
        album_from=album_from,
        ffmpeg_bin=ffmpeg_bin,
        threads=_parse_int(section.get("threads"), "conversion.threads", minimum=1),
    )


def _parse_playlist_config(section: dict[str, Any]) -> PlaylistConfig:
    """Parse and validate the playlists section."""
    order = str(section.get("order") or "natural").strip().lower()
    if order not in PLAYLIST_ORDERS:
        raise ConfigError(
            f"'playlists.order' must be one of: {', '.join(PLAYLIST_ORDERS)}",
            details={"field": "playlists.order", "value": order}
        )

    return PlaylistConfig(
        order=order,
        pause_between=_parse_int(section.get("pause_between"), "playlists.pause_between", minimum=0),
    )
