"""
Library module for playlist-library.

The shared, deduplicated library of fetched originals.

Components:
    - layout: LibraryLayout (directory structure, on-disk lookup by id)
    - archive: DownloadArchive (append-only ledger of fetched ids)
    - fetcher: LibraryFetcher (one yt-dlp batch per playlist)
"""

from playlist_library.library.archive import DownloadArchive
from playlist_library.library.fetcher import LibraryFetcher
from playlist_library.library.layout import LibraryLayout

__all__ = [
    "DownloadArchive",
    "LibraryFetcher",
    "LibraryLayout",
]
