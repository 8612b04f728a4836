"""Test configuration and fixtures"""

import json
import tempfile
from pathlib import Path

import pytest

from playlist_library.core.config import load_config
from playlist_library.core.process import ProcessResult
from playlist_library.library.layout import LibraryLayout


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def config_factory(temp_dir, monkeypatch):
    """Build a Config rooted in temp_dir; keyword args are dotted overrides"""
    monkeypatch.chdir(temp_dir)

    def factory(**overrides):
        values = {
            "output.directory": str(temp_dir / "out"),
            "playlists.pause_between": 0,
        }
        values.update({key.replace("__", "."): value for key, value in overrides.items()})
        return load_config(overrides=values, environ={})

    return factory


@pytest.fixture
def layout(temp_dir):
    """Library layout with the default template, directories created"""
    layout = LibraryLayout(
        temp_dir / "out" / "library",
        temp_dir / "out" / ".archive",
        "%(id)s - %(title)s",
    )
    layout.prepare(["original", "mp3", "wav", "flac"])
    return layout


def add_original(layout, track_id, title, ext="opus", info=None, artwork=True):
    """Place a fetched original plus sidecars into the library"""
    source = layout.original_dir / f"{track_id} - {title}.{ext}"
    source.write_bytes(b"audio")
    sidecar = info if info is not None else {
        "id": track_id,
        "title": title,
        "uploader": "Some DJ",
        "playlist_title": "Summer Mix",
        "upload_date": "20210315",
    }
    layout.info_json_path(source).write_text(json.dumps(sidecar), encoding="utf-8")
    if artwork:
        layout.artwork_path(source).write_bytes(b"jpeg")
    return source


@pytest.fixture
def library_builder(layout):
    """Callable placing originals into the shared library"""
    def build(track_id, title, **kwargs):
        return add_original(layout, track_id, title, **kwargs)
    return build


def fake_ffmpeg(args, on_stdout=None, on_stderr=None, timeout=None):
    """Stand-in for run_process: writes the .part output ffmpeg would produce"""
    part = next(arg for arg in args if arg.endswith(".part"))
    Path(part).write_bytes(b"converted")
    return ProcessResult(returncode=0, stdout="")


@pytest.fixture
def playlist_info():
    """Flat playlist document as returned by the extractor"""
    return {
        "_type": "playlist",
        "id": "98765",
        "title": "Summer Mix",
        "uploader": "Some DJ",
        "entries": [
            {"id": "1", "title": "Intro"},
            {"id": "2", "title": "Song"},
            {"id": "10", "title": "Outro"},
        ],
    }


@pytest.fixture
def ffmpeg_stub():
    """run_process replacement producing the converted file"""
    return fake_ffmpeg
