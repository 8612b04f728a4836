"""
Data models for resolved playlists.

Design:
    Both models are rebuilt from the extractor on every run. TrackIdentity.id
    is the durable key: it names the library file, the archive record and
    every converted sibling. PlaylistIdentity only exists to derive readable
    file names for the emitted playlist files.
"""

import hashlib
from dataclasses import dataclass
from typing import Any

from playlist_library.utils import safe_name


@dataclass(frozen=True)
class TrackIdentity:
    """
    One entry of a resolved playlist.

    Attributes:
        id: Extractor-assigned track id, stable across playlists.
            Example: "1234567890"
        title: Track title as listed in the playlist. May be empty.
    """
    id: str
    title: str

    @classmethod
    def from_entry(cls, entry: Any) -> "TrackIdentity | None":
        """
        Create a TrackIdentity from one flat playlist entry.

        Args:
            entry: An item of the extractor's 'entries' list.

        Returns:
            TrackIdentity, or None when the entry is not a dictionary or
            has no usable id (such entries can never be deduplicated).
        """
        if not isinstance(entry, dict):
            return None

        raw_id = entry.get("id")
        track_id = str(raw_id).strip() if raw_id is not None else ""
        if not track_id:
            return None

        return cls(id=track_id, title=str(entry.get("title") or ""))


@dataclass(frozen=True)
class PlaylistIdentity:
    """
    Identity of a resolved playlist.

    Attributes:
        id: Playlist id reported by the extractor, or the MD5 of the URL.
        title: Playlist title ("Playlist" when unknown).
        owner: Uploader or channel name ("SoundCloud" when neither is reported).

    Properties:
        folder_name: Filesystem-safe "owner - title [id]" used to name the
                     playlist files.

    Example:
        playlist = PlaylistIdentity.from_info(info, url)
        print(playlist.folder_name)  # "Some DJ - Summer Mix _98765_"
    """
    id: str
    title: str
    owner: str

    @classmethod
    def from_info(cls, info: dict[str, Any], url: str) -> "PlaylistIdentity":
        """
        Create a PlaylistIdentity from the extractor's playlist document.

        Args:
            info: Document returned by the flat metadata query.
            url: The playlist URL (used for the fallback id).

        Returns:
            PlaylistIdentity with defaults applied for missing fields.
        """
        title = str(info.get("title") or "").strip() or "Playlist"

        playlist_id = str(info.get("id") or "").strip()
        if not playlist_id:
            playlist_id = hashlib.md5(url.encode("utf-8")).hexdigest()

        owner = ""
        for key in ("uploader", "channel"):
            value = info.get(key)
            if value and str(value).strip():
                owner = str(value).strip()
                break

        return cls(id=playlist_id, title=title, owner=owner or "SoundCloud")

    @property
    def folder_name(self) -> str:
        """Filesystem-safe name: 'owner - title [id]'."""
        return safe_name(f"{self.owner} - {self.title} [{self.id}]")
