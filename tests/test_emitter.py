"""Test playlist file emission"""

import os
from pathlib import Path

import pytest

from playlist_library.core.exceptions import OutputError
from playlist_library.extractor.models import PlaylistIdentity
from playlist_library.playlist.emitter import (
    EntryOrder,
    PlaylistEmitter,
    natural_sort_key,
    relative_reference,
)

PLAYLIST = PlaylistIdentity(id="98765", title="Summer Mix", owner="Some DJ")


@pytest.fixture
def mp3_files(layout):
    """Converted mp3 files, in playlist order 10, 2, 1"""
    files = []
    for name in ("10 - Outro", "2 - Song", "1 - Intro"):
        path = layout.format_dir("mp3") / f"{name}.mp3"
        path.write_bytes(b"mp3")
        files.append(path)
    return files


def read_entries(playlist_file):
    """Playlist lines without the header"""
    lines = playlist_file.read_text(encoding="utf-8").split("\n")
    assert lines[0] == "#EXTM3U"
    assert lines[-1] == ""
    return lines[1:-1]


class TestNaturalSort:
    """Test natural ordering"""

    def test_digit_runs_compare_numerically(self):
        """Test that 2 sorts before 10"""
        values = ["10 - a", "2 - a", "1 - a", "b", "a10", "a9"]
        assert sorted(values, key=natural_sort_key) == ["1 - a", "2 - a", "10 - a", "a9", "a10", "b"]

    def test_equal_numbers_stay_deterministic(self):
        """Test that numerically equal keys fall back to the string"""
        assert sorted(["1 - x", "01 - x"], key=natural_sort_key) == ["01 - x", "1 - x"]


class TestRelativeReference:
    """Test playlist-relative paths"""

    def test_reference_resolves_back(self, temp_dir):
        """Test that the reference points at the same file"""
        target = temp_dir / "library" / "mp3" / "1 - Intro.mp3"
        target.parent.mkdir(parents=True)
        target.write_bytes(b"mp3")
        playlist_dir = temp_dir / "playlists"
        playlist_dir.mkdir()

        reference = relative_reference(playlist_dir, target)

        assert reference == "../library/mp3/1 - Intro.mp3"
        assert os.path.samefile(playlist_dir / reference, target)


class TestPlaylistEmitter:
    """Test PlaylistEmitter"""

    def test_natural_order(self, temp_dir, mp3_files):
        """Test entries sorted naturally with forward-slash relative paths"""
        emitter = PlaylistEmitter(temp_dir / "out" / "playlists")
        playlist_file = temp_dir / "out" / "playlists" / "mix.m3u8"

        assert emitter.emit(playlist_file, mp3_files) == 3

        assert read_entries(playlist_file) == [
            "../library/mp3/1 - Intro.mp3",
            "../library/mp3/2 - Song.mp3",
            "../library/mp3/10 - Outro.mp3",
        ]
        for entry in read_entries(playlist_file):
            assert (playlist_file.parent / entry).is_file()

    def test_playlist_order(self, temp_dir, mp3_files):
        """Test that PLAYLIST order keeps the given order"""
        emitter = PlaylistEmitter(temp_dir / "out" / "playlists", EntryOrder.PLAYLIST)
        playlist_file = temp_dir / "out" / "playlists" / "mix.m3u8"

        emitter.emit(playlist_file, mp3_files)

        assert [Path(entry).stem for entry in read_entries(playlist_file)] == [
            "10 - Outro", "2 - Song", "1 - Intro",
        ]

    def test_duplicates_kept(self, temp_dir, mp3_files):
        """Test one line per occurrence"""
        emitter = PlaylistEmitter(temp_dir / "out" / "playlists")
        playlist_file = temp_dir / "out" / "playlists" / "mix.m3u8"

        assert emitter.emit(playlist_file, mp3_files + [mp3_files[0]]) == 4
        assert read_entries(playlist_file).count("../library/mp3/10 - Outro.mp3") == 2

    def test_empty_playlist(self, temp_dir):
        """Test that an empty playlist holds only the header"""
        emitter = PlaylistEmitter(temp_dir / "playlists")
        playlist_file = temp_dir / "playlists" / "empty.m3u8"

        assert emitter.emit(playlist_file, []) == 0
        assert playlist_file.read_text(encoding="utf-8") == "#EXTM3U\n"

    def test_rewritten_each_time(self, temp_dir, mp3_files):
        """Test that a previous playlist file is replaced, not appended to"""
        emitter = PlaylistEmitter(temp_dir / "out" / "playlists")
        playlist_file = temp_dir / "out" / "playlists" / "mix.m3u8"

        emitter.emit(playlist_file, mp3_files)
        emitter.emit(playlist_file, mp3_files[:1])

        assert read_entries(playlist_file) == ["../library/mp3/10 - Outro.mp3"]
        assert [p.name for p in playlist_file.parent.iterdir()] == ["mix.m3u8"]

    def test_emit_all(self, temp_dir, mp3_files):
        """Test one file per converted format, original skipped"""
        playlists_dir = temp_dir / "out" / "playlists"
        emitter = PlaylistEmitter(playlists_dir)

        written = emitter.emit_all(PLAYLIST, {
            "original": mp3_files,
            "mp3": mp3_files,
            "flac": [],
        })

        assert set(written) == {"mp3", "flac"}
        mp3_file, mp3_count = written["mp3"]
        assert mp3_file == playlists_dir / "Some DJ - Summer Mix _98765_ - mp3.m3u8"
        assert mp3_count == 3
        assert written["flac"][1] == 0
        assert sorted(p.name for p in playlists_dir.iterdir()) == [
            "Some DJ - Summer Mix _98765_ - flac.m3u8",
            "Some DJ - Summer Mix _98765_ - mp3.m3u8",
        ]

    def test_unwritable_directory(self, temp_dir):
        """Test that write failures raise OutputError"""
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        emitter = PlaylistEmitter(blocker)

        with pytest.raises(OutputError):
            emitter.emit(blocker / "mix.m3u8", [])
