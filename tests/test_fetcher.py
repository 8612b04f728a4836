"""Test the library fetcher"""

from unittest.mock import patch

import pytest
from yt_dlp.utils import DownloadError

from playlist_library.core.exceptions import FetchBatchError
from playlist_library.extractor.models import TrackIdentity
from playlist_library.library.fetcher import LibraryFetcher


URL = "https://example.com/someone/sets/summer-mix"

TRACKS = [
    TrackIdentity("1", "Intro"),
    TrackIdentity("2", "Song"),
    TrackIdentity("10", "Outro"),
]


@pytest.fixture
def fetcher(layout, config_factory):
    """Fetcher on the shared test library"""
    return LibraryFetcher(layout, config_factory().extractor)


class TestFetchAll:
    """Test LibraryFetcher.fetch_all"""

    @patch("playlist_library.library.fetcher.YoutubeDL")
    def test_nothing_to_fetch(self, mock_ydl, fetcher, library_builder):
        """Test that the extractor is not invoked when every track is present"""
        for track in TRACKS:
            library_builder(track.id, track.title)

        assert fetcher.fetch_all(URL, TRACKS) == 0
        mock_ydl.assert_not_called()

    @patch("playlist_library.library.fetcher.YoutubeDL")
    def test_fetch_uses_archive_file(self, mock_ydl, fetcher, layout, library_builder):
        """Test a regular batch against the archive file"""
        library_builder("1", "Intro")
        ydl = mock_ydl.return_value.__enter__.return_value
        ydl.download.return_value = 0

        assert fetcher.fetch_all(URL, TRACKS) == 0

        ydl.download.assert_called_once_with([URL])
        options = mock_ydl.call_args[0][0]
        assert options["download_archive"] == str(layout.archive_path)
        assert options["outtmpl"] == layout.output_template()

    @patch("playlist_library.library.fetcher.YoutubeDL")
    def test_without_tracks_always_fetches(self, mock_ydl, fetcher):
        """Test that an unknown track list runs the batch"""
        mock_ydl.return_value.__enter__.return_value.download.return_value = 0

        assert fetcher.fetch_all(URL) == 0
        mock_ydl.assert_called_once()

    @patch("playlist_library.library.fetcher.YoutubeDL")
    def test_stale_records_fetched_again(self, mock_ydl, fetcher, layout, library_builder):
        """Test that archive records without a library file are bypassed"""
        library_builder("1", "Intro")
        library_builder("10", "Outro")
        layout.archive_path.write_text(
            "soundcloud 1\nsoundcloud 2\nsoundcloud 10\nsoundcloud 77\n", encoding="utf-8"
        )

        def fake_download(urls):
            archive = mock_ydl.call_args[0][0]["download_archive"]
            assert isinstance(archive, set)
            assert "soundcloud 2" not in archive
            assert {"soundcloud 1", "soundcloud 10", "soundcloud 77"} <= archive
            library_builder("2", "Song")
            archive.add("soundcloud 2")
            return 0

        mock_ydl.return_value.__enter__.return_value.download.side_effect = fake_download

        assert fetcher.fetch_all(URL, TRACKS) == 0
        assert layout.find_original("2") is not None
        lines = layout.archive_path.read_text(encoding="utf-8").splitlines()
        assert sorted(lines) == sorted(set(lines))
        assert "soundcloud 2" in lines

    @patch("playlist_library.library.fetcher.YoutubeDL")
    def test_failed_batch(self, mock_ydl, fetcher):
        """Test the exit status of a batch with failed tracks"""
        mock_ydl.return_value.__enter__.return_value.download.return_value = 1

        assert fetcher.fetch_all(URL, TRACKS) == 1

        with pytest.raises(FetchBatchError) as exc_info:
            fetcher.fetch_all(URL, TRACKS, check=True)
        assert exc_info.value.exit_status == 1

    @patch("playlist_library.library.fetcher.YoutubeDL")
    def test_aborted_batch(self, mock_ydl, fetcher):
        """Test that a raised extractor error counts as a failed batch"""
        mock_ydl.return_value.__enter__.return_value.download.side_effect = (
            DownloadError("ERROR: HTTP Error 429")
        )

        assert fetcher.fetch_all(URL, TRACKS) == 1

    @patch("playlist_library.library.fetcher.YoutubeDL")
    def test_unexpected_exception_in_batch(self, mock_ydl, fetcher):
        """Test that any exception from the batch counts as a failed batch"""
        mock_ydl.return_value.__enter__.return_value.download.side_effect = KeyError("entries")

        assert fetcher.fetch_all(URL, TRACKS) == 1

        with pytest.raises(FetchBatchError):
            fetcher.fetch_all(URL, TRACKS, check=True)


class TestLocate:
    """Test LibraryFetcher.locate"""

    @patch("playlist_library.library.fetcher.log_track_failure")
    def test_locate(self, mock_failure, fetcher, library_builder):
        """Test present tracks mapped and missing ones reported once"""
        intro = library_builder("1", "Intro")
        outro = library_builder("10", "Outro")
        tracks = TRACKS + [TrackIdentity("2", "Song"), TrackIdentity("1", "Intro")]

        available = fetcher.locate(tracks, "Some DJ - Summer Mix _98765_")

        assert available == {"1": intro, "10": outro}
        mock_failure.assert_called_once()
        assert mock_failure.call_args.kwargs["track_id"] == "2"
        assert mock_failure.call_args.kwargs["stage"] == "fetch"
