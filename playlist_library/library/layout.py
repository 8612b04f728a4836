"""
On-disk layout of the shared library.

Architecture:
    output_directory/
    ├── .archive/
    │   └── original.txt                  # Download archive ("<extractor> <id>" lines)
    ├── library/
    │   ├── original/                     # Fetched audio + sidecars, one per track id
    │   │   ├── 1234 - Song.opus
    │   │   ├── 1234 - Song.info.json
    │   │   └── 1234 - Song.jpg
    │   ├── mp3/
    │   │   └── 1234 - Song.mp3
    │   ├── wav/
    │   └── flac/
    ├── playlists/
    │   ├── Some DJ - Mix _98765_ - mp3.m3u8
    │   └── Some DJ - Mix _98765_ - flac.m3u8
    └── logs/

Originals are named from the filename template (default "%(id)s - %(title)s").
Converted files keep the original's stem so they stay keyed by track id.

Usage:
    layout = LibraryLayout(library_dir, archive_dir, "%(id)s - %(title)s")
    layout.prepare(["original", "mp3"])
    source = layout.find_original("1234")
    target = layout.converted_path(source, "mp3")
"""

import glob
import re
from pathlib import Path

from playlist_library.core.exceptions import OutputError
from playlist_library.core.logger import get_logger
from playlist_library.utils import ensure_directory

logger = get_logger(__name__)


ORIGINAL_FORMAT = "original"
ARCHIVE_FILENAME = "original.txt"

# Files next to the originals that are never the audio itself
SIDECAR_SUFFIXES = (
    ".info.json",
    ".jpg",
    ".webp",
    ".png",
    ".part",
    ".ytdl",
    ".temp",
)

# A yt-dlp template field: %(name)s, %(title).50s, %(upload_date>%Y)s ...
_TEMPLATE_FIELD_RE = re.compile(r"%\((?P<field>[^)]*)\)[-#0 +]*\d*(?:\.\d+)?[a-zA-Z]")


class LibraryLayout:
    """
    Paths of the shared library, the archive and the converted formats.

    Attributes:
        library_dir: Library root.
        archive_dir: Directory holding the archive file.
        filename_template: Template for originals, without extension.
    """

    def __init__(self, library_dir: Path, archive_dir: Path, filename_template: str) -> None:
        self.library_dir = library_dir
        self.archive_dir = archive_dir
        self.filename_template = filename_template

    @property
    def original_dir(self) -> Path:
        """Directory holding fetched originals and their sidecars."""
        return self.library_dir / ORIGINAL_FORMAT

    @property
    def archive_path(self) -> Path:
        """Download archive shared by all playlists and runs."""
        return self.archive_dir / ARCHIVE_FILENAME

    def format_dir(self, fmt: str) -> Path:
        """Directory for one converted format (e.g. library/mp3)."""
        return self.library_dir / fmt

    def prepare(self, formats: tuple[str, ...] | list[str]) -> None:
        """
        Create the archive, original and per-format directories.

        Args:
            formats: Requested formats ('original' is always created).

        Raises:
            OutputError: If any directory cannot be created.
        """
        directories = [self.archive_dir, self.original_dir]
        directories.extend(
            self.format_dir(fmt) for fmt in formats if fmt != ORIGINAL_FORMAT
        )

        for directory in directories:
            try:
                ensure_directory(directory)
            except OSError as e:
                raise OutputError(
                    f"Failed to create directory: {directory}",
                    details={"path": str(directory), "original_error": str(e)}
                ) from e

        logger.debug(f"Library layout ready: {self.library_dir}")

    def output_template(self) -> str:
        """
        yt-dlp output template for originals.

        Returns:
            "<library>/original/<template>.%(ext)s" with forward slashes.
        """
        return f"{self.original_dir.as_posix()}/{self.filename_template}.%(ext)s"

    def lookup_pattern(self, track_id: str) -> str:
        """
        Glob pattern (relative to original_dir) matching a track's files.

        %(id)s is replaced with the escaped id, every other template field
        with '*', and '.*' is appended for the extension.

        Example:
            "%(id)s - %(title)s" and id "1234" -> "1234 - *.*"
        """
        parts: list[str] = []
        position = 0
        for match in _TEMPLATE_FIELD_RE.finditer(self.filename_template):
            parts.append(glob.escape(self.filename_template[position:match.start()].replace("%%", "%")))
            parts.append(glob.escape(track_id) if match.group("field") == "id" else "*")
            position = match.end()
        parts.append(glob.escape(self.filename_template[position:].replace("%%", "%")))

        return "".join(parts) + ".*"

    def find_original(self, track_id: str) -> Path | None:
        """
        Locate the fetched original for a track id.

        The filesystem is the source of truth here; the archive is never
        consulted.

        Args:
            track_id: Track id.

        Returns:
            Path of the audio file (first match in sorted order), or None
            if no audio file for this id exists.
        """
        pattern = self.lookup_pattern(track_id)
        for candidate in sorted(self.original_dir.glob(pattern)):
            if not candidate.is_file() or is_sidecar(candidate):
                continue
            return candidate
        return None

    @staticmethod
    def info_json_path(source: Path) -> Path:
        """Structured metadata sidecar of an original."""
        return source.with_suffix(".info.json")

    @staticmethod
    def artwork_path(source: Path) -> Path:
        """Artwork sidecar of an original (converted to jpg at fetch time)."""
        return source.with_suffix(".jpg")

    def converted_path(self, source: Path, fmt: str) -> Path:
        """Target path of an original converted to fmt."""
        return self.format_dir(fmt) / f"{source.stem}.{fmt}"


def is_sidecar(path: Path) -> bool:
    """Whether a file next to the originals is a sidecar or partial download."""
    name = path.name.lower()
    return name.endswith(SIDECAR_SUFFIXES) or ".temp." in name or ".part-frag" in name
