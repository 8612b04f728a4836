"""
Download archive for playlist-library.

The archive is yt-dlp's download archive: one "<extractor> <id>" line per
fetched track, shared by all playlists and runs. It is a skip hint, not the
truth about the library: a record whose file has gone missing is stale and
the fetcher arranges for that id to be fetched again.

The file is append-only. Records are never rewritten or removed.

Usage:
    archive = DownloadArchive(layout.archive_path)
    known = archive.load()
    archive.append(new_records)
"""

import threading
from pathlib import Path
from typing import Iterable

from playlist_library.core.logger import get_logger

logger = get_logger(__name__)


def record_id(record: str) -> str:
    """
    Track id of an archive record.

    Example:
        record_id("soundcloud 1234567")  # "1234567"
    """
    return record.strip().rsplit(" ", 1)[-1]


class DownloadArchive:
    """
    Append-only ledger of fetched track ids.

    Thread Safety:
        All reads and appends in this process go through one lock.

    Attributes:
        path: Archive file path.
    """

    _lock = threading.Lock()

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> set[str]:
        """
        Read every record in the archive.

        Returns:
            Set of raw records ("<extractor> <id>"). Empty if the archive
            does not exist yet.
        """
        with self._lock:
            if not self.path.exists():
                return set()
            with open(self.path, "r", encoding="utf-8") as f:
                return {line.strip() for line in f if line.strip()}

    def append(self, records: Iterable[str]) -> int:
        """
        Append records that are not in the archive yet.

        Args:
            records: Raw records to add.

        Returns:
            Number of records written.
        """
        with self._lock:
            existing: set[str] = set()
            if self.path.exists():
                with open(self.path, "r", encoding="utf-8") as f:
                    existing = {line.strip() for line in f if line.strip()}

            new_records = sorted({r.strip() for r in records if r.strip()} - existing)
            if not new_records:
                return 0

            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                for record in new_records:
                    f.write(record + "\n")

        logger.debug(f"Archive: recorded {len(new_records)} new entries")
        return len(new_records)
