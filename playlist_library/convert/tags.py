"""
Tag mapping from yt-dlp .info.json sidecars.

Every converted file gets the same tags, read from the original's
structured metadata sidecar:

    title    <- title
    artist   <- uploader, else channel, else artist
    album    <- first non-empty key of the album priority list
                (default: playlist_title, then title), else album
    genre    <- genre
    comment  <- description
    date     <- upload_date (YYYYMMDD), normalized to the year
    year     <- same value as date
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from playlist_library.core.logger import get_logger

logger = get_logger(__name__)


def normalize_year(date: str) -> str:
    """
    Reduce a date stamp to its year.

    Returns the first four characters when they are digits, otherwise the
    value unchanged.

    Examples:
        normalize_year("20210315")  # "2021"
        normalize_year("2021")      # "2021"
        normalize_year("unknown")   # "unknown"
    """
    date = date.strip()
    if len(date) >= 4 and date[:4].isdigit():
        return date[:4]
    return date


@dataclass(frozen=True)
class TrackTags:
    """
    Tags written into converted files.

    Empty fields are not written.
    """
    title: str = ""
    artist: str = ""
    album: str = ""
    genre: str = ""
    comment: str = ""
    date: str = ""

    def metadata(self) -> list[tuple[str, str]]:
        """
        Tag key/value pairs in write order.

        The date is normalized to a four-digit year and written twice, as
        'date' and as 'year', since players disagree on which one to read.
        """
        pairs = [
            (key, value)
            for key, value in (
                ("title", self.title),
                ("artist", self.artist),
                ("album", self.album),
                ("genre", self.genre),
                ("comment", self.comment),
            )
            if value
        ]
        if self.date:
            year = normalize_year(self.date)
            pairs.append(("date", year))
            pairs.append(("year", year))
        return pairs


def _text(info: dict[str, Any], key: str) -> str:
    value = info.get(key)
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value if v)
    return str(value).strip()


def _first(info: dict[str, Any], keys: tuple[str, ...] | list[str]) -> str:
    for key in keys:
        value = _text(info, key)
        if value:
            return value
    return ""


def read_sidecar_tags(
    info_json: Path,
    album_from: tuple[str, ...] = ("playlist_title", "title")
) -> TrackTags:
    """
    Read tags from a .info.json sidecar.

    Args:
        info_json: Path to the sidecar.
        album_from: Keys tried in order for the album tag.

    Returns:
        TrackTags. Empty tags if the sidecar is missing or not a JSON object.
    """
    if not info_json.is_file():
        return TrackTags()

    try:
        with open(info_json, "r", encoding="utf-8") as f:
            info = json.load(f)
    except (OSError, ValueError) as e:
        logger.debug(f"Unreadable sidecar {info_json.name}: {e}")
        return TrackTags()

    if not isinstance(info, dict):
        return TrackTags()

    return TrackTags(
        title=_text(info, "title"),
        artist=_first(info, ("uploader", "channel", "artist")),
        album=_first(info, (*album_from, "album")),
        genre=_text(info, "genre"),
        comment=_text(info, "description"),
        date=_text(info, "upload_date"),
    )
