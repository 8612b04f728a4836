"""
Playlist module for playlist-library.

Components:
    - emitter: PlaylistEmitter (.m3u8 files with relative library paths)
"""

from playlist_library.playlist.emitter import (
    EntryOrder,
    PlaylistEmitter,
    natural_sort_key,
    relative_reference,
)

__all__ = [
    "EntryOrder",
    "PlaylistEmitter",
    "natural_sort_key",
    "relative_reference",
]
