"""
Convert module for playlist-library.

Components:
    - tags: TrackTags read from .info.json sidecars
    - converter: FormatConverter (idempotent ffmpeg transcodes)
"""

from playlist_library.convert.converter import FORMATS, FormatConverter, build_command
from playlist_library.convert.tags import TrackTags, normalize_year, read_sidecar_tags

__all__ = [
    "FORMATS",
    "FormatConverter",
    "build_command",
    "TrackTags",
    "normalize_year",
    "read_sidecar_tags",
]
