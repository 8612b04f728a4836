"""
Playlist resolution for playlist-library.

Resolves a playlist URL into its identity and ordered track list using a
single flat yt-dlp metadata query. No audio is fetched here.

Usage:
    from playlist_library.extractor.resolver import PlaylistResolver

    resolver = PlaylistResolver(config.extractor)
    playlist, tracks = resolver.resolve(url)
    print(f"{playlist.folder_name}: {len(tracks)} tracks")
"""

from typing import Any

from yt_dlp import YoutubeDL
from yt_dlp.utils import YoutubeDLError

from playlist_library.core.config import ExtractorConfig
from playlist_library.core.exceptions import ResolutionError
from playlist_library.core.logger import get_logger
from playlist_library.extractor.models import PlaylistIdentity, TrackIdentity
from playlist_library.extractor.options import YtDlpLogger, build_resolve_options

logger = get_logger(__name__)


class PlaylistResolver:
    """
    Resolves playlist URLs into (PlaylistIdentity, [TrackIdentity, ...]).

    Attributes:
        _config: Extractor tuning shared with the fetch step.
    """

    def __init__(self, config: ExtractorConfig) -> None:
        self._config = config

    def resolve(self, url: str) -> tuple[PlaylistIdentity, list[TrackIdentity]]:
        """
        Query one playlist URL in flat, metadata-only mode.

        Args:
            url: Playlist URL.

        Returns:
            Tuple of (PlaylistIdentity, tracks in extractor order). Entries
            without a non-empty id are dropped.

        Raises:
            ResolutionError: If the query fails, the result is not a
                playlist document, or no usable entries remain.
        """
        info = self._extract(url)

        if not isinstance(info, dict):
            raise ResolutionError(
                "Extractor returned no playlist document",
                details={"url": url}
            )

        raw_entries = info.get("entries")
        if raw_entries is None:
            raise ResolutionError(
                "URL does not point to a playlist (no entries listed)",
                details={"url": url, "type": info.get("_type")}
            )

        raw_entries = list(raw_entries)
        tracks: list[TrackIdentity] = []
        for entry in raw_entries:
            track = TrackIdentity.from_entry(entry)
            if track is not None:
                tracks.append(track)

        dropped = len(raw_entries) - len(tracks)
        if dropped:
            logger.debug(f"Dropped {dropped} entries without an id")

        if not tracks:
            raise ResolutionError(
                "Playlist has no entries",
                details={"url": url}
            )

        playlist = PlaylistIdentity.from_info(info, url)
        logger.debug(f"Resolved {playlist.folder_name}: {len(tracks)} entries")
        return playlist, tracks

    def _extract(self, url: str) -> Any:
        """Run the flat extractor query, mapping failures to ResolutionError."""
        yt_logger = YtDlpLogger()
        options = build_resolve_options(self._config, yt_logger)

        try:
            with YoutubeDL(options) as ydl:
                return ydl.extract_info(url, download=False)
        except YoutubeDLError as e:
            raise ResolutionError(
                f"Failed to resolve playlist: {yt_logger.last_error or e}",
                details={"url": url, "original_error": str(e)}
            ) from e
        except Exception as e:
            # Extractor bugs surface unwrapped when ignoreerrors is off
            raise ResolutionError(
                f"Failed to resolve playlist: {type(e).__name__}: {e}",
                details={"url": url, "original_error": repr(e)}
            ) from e
