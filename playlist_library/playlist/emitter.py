"""
Playlist file emission for playlist-library.

Writes one extended M3U (.m3u8) file per playlist and converted format,
listing library files as paths relative to the playlist file's directory
with forward slashes, so the playlists directory and the library can be
moved together or shared between machines.

File format:
    #EXTM3U
    ../library/mp3/1 - Intro.mp3
    ../library/mp3/2 - Song.mp3
    ../library/mp3/10 - Outro.mp3

Ordering:
    NATURAL (default) sorts entries by path with digit runs compared as
    numbers, so "2 - ..." comes before "10 - ...". PLAYLIST keeps the
    resolved playlist order instead.

Playlist files are rewritten on every run through a temporary file and an
atomic rename; readers never see a half-written playlist. A format with no
converted tracks still gets a file holding only the header.

Usage:
    emitter = PlaylistEmitter(playlists_dir, EntryOrder.NATURAL)
    written = emitter.emit_all(playlist, {"mp3": [...], "flac": [...]})
"""

import os
import re
import tempfile
from enum import Enum
from pathlib import Path
from typing import Iterable

from playlist_library.core.exceptions import OutputError
from playlist_library.core.logger import get_logger
from playlist_library.extractor.models import PlaylistIdentity

logger = get_logger(__name__)


M3U_HEADER = "#EXTM3U"
PLAYLIST_EXTENSION = ".m3u8"

_DIGITS_RE = re.compile(r"(\d+)")


class EntryOrder(Enum):
    """Ordering policy for playlist entries."""
    NATURAL = "natural"
    PLAYLIST = "playlist"


def natural_sort_key(value: str) -> tuple:
    """
    Sort key comparing digit runs numerically.

    Case-sensitive. Ties between numerically equal keys ("01" and "1")
    fall back to the plain string.

    Example:
        sorted(["10 - a", "2 - a", "1 - a"], key=natural_sort_key)
        # ["1 - a", "2 - a", "10 - a"]
    """
    parts = _DIGITS_RE.split(value)
    key = tuple(int(part) if index % 2 else part for index, part in enumerate(parts))
    return key, value


def relative_reference(playlist_dir: Path, target: Path) -> str:
    """
    Path of target relative to playlist_dir, with forward slashes.

    Both paths are fully resolved first (symlinks included), so the
    reference resolves back to the same file from the playlist directory.
    Falls back to the absolute path when no relative path exists (e.g.
    different drives on Windows).
    """
    resolved_target = os.path.realpath(target)
    try:
        relative = os.path.relpath(resolved_target, os.path.realpath(playlist_dir))
    except ValueError:
        relative = resolved_target
    return relative.replace(os.sep, "/")


class PlaylistEmitter:
    """
    Writes .m3u8 playlist files.

    Attributes:
        playlists_dir: Directory receiving the playlist files.
        order: Entry ordering policy.
    """

    def __init__(self, playlists_dir: Path, order: EntryOrder = EntryOrder.NATURAL) -> None:
        self.playlists_dir = playlists_dir
        self.order = order

    def emit(self, playlist_file: Path, library_files: Iterable[Path]) -> int:
        """
        Write one playlist file, replacing any previous version.

        Args:
            playlist_file: Playlist file to write.
            library_files: Files to list, in playlist order. Duplicates are
                           kept (one line per occurrence).

        Returns:
            Number of entries written.

        Raises:
            OutputError: If the file cannot be written.
        """
        entries = [Path(os.path.realpath(path)) for path in library_files]
        if self.order is EntryOrder.NATURAL:
            entries.sort(key=lambda path: natural_sort_key(str(path)))

        playlist_dir = playlist_file.parent
        lines = [M3U_HEADER]
        lines.extend(relative_reference(playlist_dir, path) for path in entries)

        self._write_atomic(playlist_file, "\n".join(lines) + "\n")
        return len(entries)

    def emit_all(
        self,
        playlist: PlaylistIdentity,
        files_by_format: dict[str, list[Path]]
    ) -> dict[str, tuple[Path, int]]:
        """
        Write the playlist files of one playlist, one per converted format.

        The 'original' format never gets a playlist file.

        Args:
            playlist: Playlist identity (names the files).
            files_by_format: Format -> library files in playlist order.

        Returns:
            Format -> (playlist file, entries written).
        """
        written: dict[str, tuple[Path, int]] = {}

        for fmt, files in files_by_format.items():
            if fmt == "original":
                continue

            playlist_file = self.playlists_dir / f"{playlist.folder_name} - {fmt}{PLAYLIST_EXTENSION}"
            count = self.emit(playlist_file, files)
            written[fmt] = (playlist_file, count)
            logger.info(f"Wrote playlist: {playlist_file} ({count} entries)")

        return written

    @staticmethod
    def _write_atomic(path: Path, content: str) -> None:
        """Write content to a temp file next to path, then rename over it."""
        temp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                newline="\n",
                dir=path.parent,
                prefix=f".{path.stem}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                temp_name = f.name
                f.write(content)
            os.replace(temp_name, path)
            temp_name = None
        except OSError as e:
            raise OutputError(
                f"Failed to write playlist file: {path}",
                details={"path": str(path), "original_error": str(e)}
            ) from e
        finally:
            if temp_name is not None and os.path.exists(temp_name):
                os.unlink(temp_name)
