"""
Extractor module for playlist-library.

Everything that talks to yt-dlp for playlist metadata lives here.

Components:
    - models: TrackIdentity and PlaylistIdentity dataclasses
    - options: yt-dlp option dictionaries and the logger adapter
    - resolver: PlaylistResolver (flat metadata query)

Usage:
    from playlist_library.extractor import PlaylistResolver

    playlist, tracks = PlaylistResolver(config.extractor).resolve(url)
"""

from playlist_library.extractor.models import PlaylistIdentity, TrackIdentity
from playlist_library.extractor.options import (
    YtDlpLogger,
    build_fetch_options,
    build_resolve_options,
)
from playlist_library.extractor.resolver import PlaylistResolver

__all__ = [
    "TrackIdentity",
    "PlaylistIdentity",
    "YtDlpLogger",
    "build_resolve_options",
    "build_fetch_options",
    "PlaylistResolver",
]
