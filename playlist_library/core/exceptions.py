"""
Exception classes for playlist-library.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary, and the class itself tells the caller how far the failure
propagates.

Exception Hierarchy:
    PlaylistLibraryError (base)
        ConfigError - Configuration or input list issues (fatal)
        DependencyMissing - ffmpeg binary unreachable (fatal)
        OutputError - Output directories cannot be created (fatal)
        ResolutionError - Playlist cannot be enumerated (skip playlist)
        FetchBatchError - Extractor fetch batch reported failures (log, continue)
        ConversionFailure - Transcode of one track/format failed (skip pair)
"""


class PlaylistLibraryError(Exception):
    """
    Base exception for all playlist-library errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch every library error with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., URL, path).

    Example:
        try:
            pipeline.run(urls)
        except PlaylistLibraryError as e:
            logger.error(f"Run failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'url': Playlist URL involved in the error
                     - 'path': Filesystem path involved in the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(PlaylistLibraryError):
    """
    Raised when there's an issue with the configuration or the input list.

    This is a CRITICAL error that stops the run before any playlist
    is processed.

    Common causes:
        - config.yaml has invalid YAML syntax
        - No output directory configured
        - Unknown format in the requested format set
        - Input file missing, unreadable, or without URLs
        - Cookie file configured but not found

    Example:
        raise ConfigError(
            "'conversion.formats' contains unknown format 'ogg'",
            details={'field': 'conversion.formats', 'value': 'ogg'}
        )
    """
    pass


class DependencyMissing(PlaylistLibraryError):
    """
    Raised when a required external binary cannot be executed.

    This is a CRITICAL error checked once at startup, before any
    playlist is processed.

    Example:
        raise DependencyMissing(
            "Missing dependency: ffmpeg. Please install it and ensure it's in PATH.",
            details={'binary': 'ffmpeg'}
        )
    """
    pass


class OutputError(PlaylistLibraryError):
    """
    Raised when the output root or one of its managed directories
    (library, archive, playlists) cannot be created.

    This is a CRITICAL error: without a writable library there is
    nothing useful the run can do.
    """
    pass


class ResolutionError(PlaylistLibraryError):
    """
    Raised when a playlist cannot be identified or enumerated.

    This is a NON-CRITICAL error at run level - the playlist is skipped
    and the run continues with the next URL.

    Common causes:
        - Extractor query failed (private playlist, network error, bad URL)
        - Extractor returned something other than a playlist document
        - Playlist has zero usable entries

    Example:
        raise ResolutionError(
            "Playlist has no entries",
            details={'url': url}
        )
    """
    pass


class FetchBatchError(PlaylistLibraryError):
    """
    Raised when the extractor's fetch batch for a playlist reports failures.

    This is a NON-CRITICAL error. Individual missing tracks are discovered
    afterwards by checking the library directory, never by parsing the
    extractor's error output.

    Attributes:
        exit_status: The non-zero status reported by the extractor.
    """

    def __init__(
        self,
        message: str,
        exit_status: int,
        details: dict | None = None
    ) -> None:
        """
        Initialize the fetch batch error.

        Args:
            message: Human-readable error description.
            exit_status: Non-zero status reported by the extractor.
            details: Optional dictionary with additional context.
        """
        super().__init__(message, details)
        self.exit_status = exit_status


class ConversionFailure(PlaylistLibraryError):
    """
    Raised when one (track, format) transcode cannot be produced.

    This is a NON-CRITICAL error, and it never leaves the converter:
    FormatConverter.convert() catches it, logs it and returns None so the
    caller skips that pair and continues.

    Common causes:
        - Source audio file missing
        - ffmpeg exited non-zero or timed out
        - Unsupported target format
    """
    pass
