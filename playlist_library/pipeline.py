"""
Run orchestration for playlist-library.

Processes playlist URLs one at a time, in input order:

    1. Resolve   - flat metadata query (PlaylistResolver)
    2. Fetch     - one yt-dlp batch into the shared library (LibraryFetcher)
    3. Locate    - find each track's original on disk
    4. Convert   - every (track, requested format) pair (FormatConverter)
    5. Emit      - one .m3u8 per converted format (PlaylistEmitter)

Failure policy:
    - ResolutionError: the playlist is skipped, the run continues
    - FetchBatchError: logged; tracks that did arrive are still used
    - Conversion failures: that (track, format) pair is skipped
    - DependencyMissing / OutputError from prepare(): fatal, raised to the CLI

Usage:
    pipeline = Pipeline(config)
    pipeline.check_dependencies()
    pipeline.prepare()
    report = pipeline.run(urls)
    for line in report.summary_lines():
        logger.info(line)
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from yt_dlp.version import __version__ as yt_dlp_version

from playlist_library.convert.converter import FormatConverter
from playlist_library.convert.tags import read_sidecar_tags
from playlist_library.core.config import Config
from playlist_library.core.exceptions import (
    FetchBatchError,
    OutputError,
    ResolutionError,
)
from playlist_library.core.logger import get_logger, log_track_failure
from playlist_library.core.process import require_binary
from playlist_library.core.progress import ConversionProgressBar
from playlist_library.extractor.models import PlaylistIdentity, TrackIdentity
from playlist_library.extractor.resolver import PlaylistResolver
from playlist_library.library.fetcher import LibraryFetcher
from playlist_library.library.layout import LibraryLayout
from playlist_library.playlist.emitter import EntryOrder, PlaylistEmitter
from playlist_library.utils import ensure_directory, run_in_parallel

logger = get_logger(__name__)


@dataclass
class PlaylistReport:
    """
    Outcome of one playlist.

    Attributes:
        url: Playlist URL as given.
        name: Playlist folder name (empty if resolution failed).
        resolved: Entries returned by the resolver.
        available: Unique tracks found in the library after the fetch.
        fetch_status: Exit status of the fetch batch.
        converted: Format -> unique tracks available in that format.
        entries_written: Format -> entries written to the playlist file.
        playlist_files: Format -> playlist file path.
        error: Why the playlist was skipped, or None.
    """
    url: str
    name: str = ""
    resolved: int = 0
    available: int = 0
    fetch_status: int = 0
    converted: dict[str, int] = field(default_factory=dict)
    entries_written: dict[str, int] = field(default_factory=dict)
    playlist_files: dict[str, Path] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunReport:
    """Outcome of a whole run."""
    playlists: list[PlaylistReport] = field(default_factory=list)

    @property
    def failed(self) -> list[PlaylistReport]:
        return [report for report in self.playlists if not report.ok]

    def summary_lines(self) -> list[str]:
        """
        One line per playlist with its entry counts.

        Example:
            "Some DJ - Mix _98765_: 2/3 tracks available | mp3: 2 entries | wav: 2 entries"
        """
        lines = []
        for report in self.playlists:
            if not report.ok:
                lines.append(f"{report.name or report.url}: SKIPPED ({report.error})")
                continue

            parts = [f"{report.name}: {report.available}/{report.resolved} tracks available"]
            parts.extend(
                f"{fmt}: {count} entries" for fmt, count in report.entries_written.items()
            )
            lines.append(" | ".join(parts))
        return lines


class Pipeline:
    """
    Materializes playlists into the shared library and playlist files.

    Attributes:
        config: Run configuration.
        layout: Library layout.
        resolver: Playlist resolver.
        fetcher: Library fetcher.
        converter: Format converter.
        emitter: Playlist emitter.
    """

    def __init__(
        self,
        config: Config,
        show_progress: bool = True,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self.config = config
        self.show_progress = show_progress
        self._sleep = sleep

        self.layout = LibraryLayout(
            config.output.library_directory,
            config.output.archive_directory,
            config.extractor.filename_template,
        )
        self.resolver = PlaylistResolver(config.extractor)
        self.fetcher = LibraryFetcher(self.layout, config.extractor)
        self.converter = FormatConverter(
            config.conversion.ffmpeg_bin,
            config.conversion.mp3_quality,
        )
        self.emitter = PlaylistEmitter(
            config.output.playlists_directory,
            EntryOrder(config.playlists.order),
        )

    def check_dependencies(self) -> None:
        """
        Verify external tools before any playlist is touched.

        Raises:
            DependencyMissing: If ffmpeg cannot be executed.
        """
        require_binary(self.config.conversion.ffmpeg_bin, "-version")
        logger.debug(f"Using yt-dlp {yt_dlp_version}")

    def prepare(self) -> None:
        """
        Create the output directories.

        Raises:
            OutputError: If any of them cannot be created.
        """
        for directory in (self.config.output.directory, self.config.output.playlists_directory):
            try:
                ensure_directory(directory)
            except OSError as e:
                raise OutputError(
                    f"Failed to create directory: {directory}",
                    details={"path": str(directory), "original_error": str(e)}
                ) from e

        self.layout.prepare(self.config.conversion.formats)

    def run(self, urls: list[str]) -> RunReport:
        """
        Process every playlist URL in order.

        Per-playlist failures never stop the run. The configured pause is
        applied between playlists, not after the last one.

        Args:
            urls: Playlist URLs.

        Returns:
            RunReport with one PlaylistReport per URL.
        """
        report = RunReport()
        pause = self.config.playlists.pause_between

        for index, url in enumerate(urls, start=1):
            logger.info("-" * 60)
            logger.info(f"[{index}/{len(urls)}] Processing: {url}")

            report.playlists.append(self.process_playlist(url))

            if index < len(urls) and pause > 0:
                logger.debug(f"Pausing {pause}s before next playlist")
                self._sleep(pause)

        return report

    def process_playlist(self, url: str) -> PlaylistReport:
        """
        Resolve, fetch, convert and emit one playlist.

        Args:
            url: Playlist URL.

        Returns:
            PlaylistReport. error is set when the playlist was skipped.
        """
        report = PlaylistReport(url=url)

        try:
            playlist, tracks = self.resolver.resolve(url)
        except ResolutionError as e:
            logger.error(f"Skipping playlist: {e.message}")
            report.error = e.message
            return report

        report.name = playlist.folder_name
        report.resolved = len(tracks)
        logger.info(f"Playlist: {playlist.folder_name} ({len(tracks)} entries)")

        try:
            report.fetch_status = self.fetcher.fetch_all(url, tracks, check=True)
        except FetchBatchError as e:
            report.fetch_status = e.exit_status
            logger.warning(f"{e.message}; continuing with the tracks that are present")

        available = self.fetcher.locate(tracks, playlist.folder_name)
        report.available = len(available)

        formats = self.config.conversion.converted_formats
        results = self._convert_all(playlist, tracks, available, formats)

        files_by_format: dict[str, list[Path]] = {}
        for fmt in formats:
            files_by_format[fmt] = [
                results[(track.id, fmt)]
                for track in tracks
                if results.get((track.id, fmt)) is not None
            ]
            converted = sum(1 for track_id in available if results.get((track_id, fmt)) is not None)
            report.converted[fmt] = converted
            logger.info(f"{fmt}: {converted}/{len(available)} converted")

        try:
            written = self.emitter.emit_all(playlist, files_by_format)
        except OutputError as e:
            logger.error(e.message)
            report.error = e.message
            return report

        for fmt, (playlist_file, count) in written.items():
            report.playlist_files[fmt] = playlist_file
            report.entries_written[fmt] = count

        logger.info(f"Completed: {playlist.folder_name}")
        return report

    def _convert_all(
        self,
        playlist: PlaylistIdentity,
        tracks: list[TrackIdentity],
        available: dict[str, Path],
        formats: tuple[str, ...]
    ) -> dict[tuple[str, str], Path | None]:
        """
        Convert every (available track, format) pair once.

        Duplicated playlist entries share one conversion. Pairs run on a
        thread pool when conversion.threads > 1.

        Returns:
            (track id, format) -> converted path, or None when it failed.
        """
        pairs = [(track_id, fmt) for track_id in available for fmt in formats]
        if not pairs:
            return {}

        titles = {track.id: track.title for track in tracks}

        def convert_pair(pair: tuple[str, str]) -> tuple[Path | None, bool]:
            track_id, fmt = pair
            source = available[track_id]
            target = self.layout.converted_path(source, fmt)
            if target.exists():
                return target, True

            tags = read_sidecar_tags(
                self.layout.info_json_path(source),
                self.config.conversion.album_from,
            )
            artwork = self.layout.artwork_path(source)
            result = self.converter.convert(
                source, target, fmt, tags, artwork if artwork.is_file() else None
            )
            return result, False

        results: dict[tuple[str, str], Path | None] = {}

        with ConversionProgressBar(
            total=len(pairs),
            description=playlist.folder_name,
            enabled=self.show_progress,
        ) as progress:

            def on_result(pair: tuple[str, str], outcome) -> None:
                track_id, fmt = pair
                if isinstance(outcome, Exception):
                    path, skipped, reason = None, False, f"Unexpected error: {outcome}"
                else:
                    path, skipped = outcome
                    reason = "Conversion failed (see full log for ffmpeg output)"

                results[pair] = path
                progress.update(success=path is not None, skipped=skipped)

                if path is None:
                    log_track_failure(
                        logger,
                        playlist=playlist.folder_name,
                        track_id=track_id,
                        title=titles.get(track_id, ""),
                        stage=fmt,
                        reason=reason
                    )

            run_in_parallel(
                convert_pair,
                pairs,
                num_threads=self.config.conversion.threads,
                on_result=on_result,
            )

        return results
