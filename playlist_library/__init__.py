"""
playlist-library: Mirror remote playlists into a shared, deduplicated audio library.

This package turns a list of playlist URLs into one local library of audio
files, converted into the formats you ask for, plus portable .m3u8 playlist
files pointing into that library.

Architecture:
    Each playlist goes through four stages:

    RESOLVE (extractor/): Identify the playlist
        - One flat yt-dlp metadata query, no audio fetched
        - Playlist identity (id, title, owner) and ordered track ids

    FETCH (library/): Fill the shared library
        - One yt-dlp batch per playlist into library/original
        - Download archive skips ids fetched by any earlier playlist or run
        - Library directory checked afterwards: files on disk are the truth

    CONVERT (convert/): Produce mp3 / wav / flac siblings
        - ffmpeg, once per (track, format), skipped when the target exists
        - Tags and artwork from the .info.json and .jpg sidecars

    EMIT (playlist/): Write playlist files
        - One .m3u8 per playlist and converted format
        - Paths relative to the playlist file, forward slashes

Modules:
    core/       - Configuration, logging, exceptions, process runner, progress
    extractor/  - Playlist models, yt-dlp options, resolver
    library/    - Library layout, download archive, fetcher
    convert/    - Sidecar tags, ffmpeg converter
    playlist/   - .m3u8 emitter
    pipeline.py - Run orchestration
    cli.py      - Command-line interface

Usage:
    Command Line:
        plib --input playlists.txt --out ~/Music/Library
        plib --url "https://..." --out out --formats mp3,flac

    Python API:
        from playlist_library import Pipeline, load_config, load_playlist_urls, setup_logging

        config = load_config()
        setup_logging(config.output.directory)

        pipeline = Pipeline(config)
        pipeline.check_dependencies()
        pipeline.prepare()
        report = pipeline.run(load_playlist_urls(config))

Dependencies:
    - yt-dlp: Playlist extraction and audio fetching
    - ffmpeg-python: ffmpeg command construction (ffmpeg must be installed)
    - click / rich-click: CLI framework and colors
    - rich: Progress bars
    - tqdm: Progress-safe console logging
    - pyyaml: Configuration file parsing
    - python-dotenv: .env file loading
"""

__version__ = "0.1.0"
__author__ = "playlist-library"
__license__ = "MIT"

# Convenience imports for common usage
from playlist_library.core import (
    Config,
    ConfigError,
    ConversionFailure,
    DependencyMissing,
    FetchBatchError,
    OutputError,
    PlaylistLibraryError,
    ResolutionError,
    get_logger,
    load_config,
    load_playlist_urls,
    setup_logging,
)
from playlist_library.extractor import PlaylistIdentity, TrackIdentity
from playlist_library.pipeline import Pipeline, PlaylistReport, RunReport

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "load_playlist_urls",
    "setup_logging",
    "get_logger",
    # Exceptions
    "PlaylistLibraryError",
    "ConfigError",
    "DependencyMissing",
    "OutputError",
    "ResolutionError",
    "FetchBatchError",
    "ConversionFailure",
    # Models
    "PlaylistIdentity",
    "TrackIdentity",
    # Pipeline
    "Pipeline",
    "PlaylistReport",
    "RunReport",
]
