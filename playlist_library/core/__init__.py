"""
Core module for playlist-library.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with multiple outputs
    - process: External process runner with concurrent stream draining
    - progress: Rich progress bars

Usage:
    from playlist_library.core import (
        Config, load_config,
        setup_logging, get_logger,
        PlaylistLibraryError, ConfigError
    )
"""

from playlist_library.core.config import (
    Config,
    ConversionConfig,
    ExtractorConfig,
    OutputConfig,
    PlaylistConfig,
    load_config,
    load_playlist_urls,
)
from playlist_library.core.exceptions import (
    ConfigError,
    ConversionFailure,
    DependencyMissing,
    FetchBatchError,
    OutputError,
    PlaylistLibraryError,
    ResolutionError,
)
from playlist_library.core.logger import (
    get_logger,
    log_track_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "OutputConfig",
    "ExtractorConfig",
    "ConversionConfig",
    "PlaylistConfig",
    "load_config",
    "load_playlist_urls",
    # Exceptions
    "PlaylistLibraryError",
    "ConfigError",
    "DependencyMissing",
    "OutputError",
    "ResolutionError",
    "FetchBatchError",
    "ConversionFailure",
    # Logger
    "setup_logging",
    "get_logger",
    "log_track_failure",
    "shutdown_logging",
]
