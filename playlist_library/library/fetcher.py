"""
Library fetcher for playlist-library.

Fetches the audio of a whole playlist into the shared library with one
yt-dlp batch per playlist, then finds out what is actually on disk.

Two sources of truth are reconciled here:
    - The download archive says which ids were fetched before. yt-dlp
      skips those ids, so a track shared by several playlists is fetched
      once, ever.
    - The library directory says which files exist. This is the ground
      truth: a track counts as available only if its file can be found.

When the archive lists an id of this playlist whose file is gone (deleted by
hand, moved, ...), that record is stale. The batch then runs against an
in-memory copy of the archive without the stale records so those ids are
fetched again; afterwards only records not yet in the file are appended.

Workflow:
    1. Skip the batch entirely when every track already has a library file
    2. Look for stale archive records among this playlist's missing ids
    3. Run one yt-dlp download for the playlist URL
    4. Locate every track's original on disk

Usage:
    fetcher = LibraryFetcher(layout, config.extractor)
    status = fetcher.fetch_all(url, tracks)
    available = fetcher.locate(tracks, playlist.folder_name)
"""

from pathlib import Path

from yt_dlp import YoutubeDL
from yt_dlp.utils import YoutubeDLError

from playlist_library.core.config import ExtractorConfig
from playlist_library.core.exceptions import FetchBatchError
from playlist_library.core.logger import get_logger, log_track_failure
from playlist_library.extractor.models import TrackIdentity
from playlist_library.extractor.options import YtDlpLogger, build_fetch_options
from playlist_library.library.archive import DownloadArchive, record_id
from playlist_library.library.layout import LibraryLayout

logger = get_logger(__name__)


class LibraryFetcher:
    """
    Fetches playlists into the shared library.

    Attributes:
        layout: Library layout (paths and on-disk lookup).
        archive: Download archive shared by all playlists.
    """

    def __init__(self, layout: LibraryLayout, config: ExtractorConfig) -> None:
        self.layout = layout
        self.archive = DownloadArchive(layout.archive_path)
        self._config = config

    def fetch_all(
        self,
        url: str,
        tracks: list[TrackIdentity] | None = None,
        check: bool = False
    ) -> int:
        """
        Fetch every track of a playlist that is not in the library yet.

        Args:
            url: Playlist URL.
            tracks: Resolved tracks. When given, the batch is skipped if all
                    of them are already present, and stale archive records
                    for missing ones are bypassed.
            check: Raise FetchBatchError instead of returning a non-zero
                   status.

        Returns:
            Exit status of the batch: 0 on success or when nothing had to
            be fetched, non-zero when yt-dlp reported failures.

        Raises:
            FetchBatchError: Only with check=True and a non-zero status.
        """
        stale: set[str] = set()

        if tracks is not None:
            missing_ids = {
                track.id for track in tracks
                if self.layout.find_original(track.id) is None
            }
            if not missing_ids:
                logger.info(f"All {len(tracks)} tracks already in library, nothing to fetch")
                return 0

            logger.info(f"Fetching {len(missing_ids)} of {len(tracks)} tracks")
            records = self.archive.load()
            stale = {r for r in records if record_id(r) in missing_ids}
        else:
            records = set()

        if stale:
            logger.warning(
                f"{len(stale)} archive entries have no file in the library; fetching them again"
            )
            baseline = records - stale
            working_archive = set(baseline)
            status = self._download(url, working_archive)
            self.archive.append(working_archive - baseline)
        else:
            status = self._download(url, str(self.archive.path))

        if status != 0:
            logger.warning(f"Fetch batch finished with exit status {status}")
            if check:
                raise FetchBatchError(
                    f"Fetch batch failed with exit status {status}",
                    exit_status=status,
                    details={"url": url}
                )
        else:
            logger.debug("Fetch batch finished")

        return status

    def locate(
        self,
        tracks: list[TrackIdentity],
        playlist_name: str = ""
    ) -> dict[str, Path]:
        """
        Map each track id to its library file.

        Tracks without a file are reported in the track failures log.

        Args:
            tracks: Resolved tracks (duplicates allowed).
            playlist_name: Playlist folder name, for the failure report.

        Returns:
            Dictionary of track id -> original audio path, present tracks only.
        """
        available: dict[str, Path] = {}
        reported: set[str] = set()

        for track in tracks:
            if track.id in available or track.id in reported:
                continue

            source = self.layout.find_original(track.id)
            if source is None:
                reported.add(track.id)
                log_track_failure(
                    logger,
                    playlist=playlist_name,
                    track_id=track.id,
                    title=track.title,
                    stage="fetch",
                    reason="Not present in library after fetch"
                )
                continue

            available[track.id] = source

        return available

    def _download(self, url: str, archive: str | set[str]) -> int:
        """Run the yt-dlp batch. Any exception it raises counts as status 1."""
        yt_logger = YtDlpLogger()
        options = build_fetch_options(
            self._config, self.layout.output_template(), archive, yt_logger
        )

        try:
            with YoutubeDL(options) as ydl:
                return ydl.download([url])
        except YoutubeDLError as e:
            logger.error(f"Fetch batch aborted: {e}")
            return 1
        except Exception as e:
            logger.error(f"Fetch batch aborted: {type(e).__name__}: {e}", exc_info=True)
            return 1
