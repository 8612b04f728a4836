"""Test configuration loading and validation"""

import math

import pytest

from playlist_library.core.config import (
    load_config,
    load_playlist_urls,
    parse_retry_sleep,
    parse_sleep_requests,
)
from playlist_library.core.exceptions import ConfigError


class TestLoadConfig:
    """Test layered configuration loading"""

    def test_defaults(self, config_factory, temp_dir):
        """Test defaults derived from the output directory"""
        config = config_factory()
        out = (temp_dir / "out").resolve()

        assert config.output.directory == out
        assert config.output.library_directory == out / "library"
        assert config.output.playlists_directory == out / "playlists"
        assert config.output.archive_directory == out / ".archive"
        assert config.conversion.formats == ("original", "mp3", "wav", "flac")
        assert config.conversion.converted_formats == ("mp3", "wav", "flac")
        assert config.conversion.mp3_quality == "0"
        assert config.conversion.album_from == ("playlist_title", "title")
        assert config.conversion.threads == 1
        assert config.extractor.filename_template == "%(id)s - %(title)s"
        assert config.extractor.retries == 10
        assert config.extractor.sleep_requests == (2.0, 2.0)
        assert config.extractor.limit_rate is None
        assert config.playlists.order == "natural"

    def test_output_directory_required(self, temp_dir, monkeypatch):
        """Test that a missing output directory is a ConfigError"""
        monkeypatch.chdir(temp_dir)
        with pytest.raises(ConfigError) as exc_info:
            load_config(environ={})
        assert exc_info.value.details["field"] == "output.directory"

    def test_yaml_file(self, temp_dir, monkeypatch):
        """Test values read from config.yaml in the working directory"""
        monkeypatch.chdir(temp_dir)
        (temp_dir / "config.yaml").write_text(
            "output:\n"
            "  directory: library-root\n"
            "conversion:\n"
            "  formats: [flac, mp3]\n"
            "  threads: 3\n",
            encoding="utf-8",
        )

        config = load_config(environ={})

        assert config.output.directory == (temp_dir / "library-root").resolve()
        # Kept in canonical order regardless of how they were listed
        assert config.conversion.formats == ("mp3", "flac")
        assert config.conversion.threads == 3

    def test_yaml_null_mp3_quality(self, temp_dir, monkeypatch):
        """Test that an empty mp3_quality falls back to the default"""
        monkeypatch.chdir(temp_dir)
        (temp_dir / "config.yaml").write_text(
            "output:\n  directory: out\nconversion:\n  mp3_quality:\n",
            encoding="utf-8",
        )

        config = load_config(environ={})

        assert config.conversion.mp3_quality == "0"

    def test_environment_overrides_yaml(self, temp_dir, monkeypatch):
        """Test environment variables beating config.yaml"""
        monkeypatch.chdir(temp_dir)
        (temp_dir / "config.yaml").write_text(
            "output:\n  directory: from-yaml\nconversion:\n  threads: 2\n",
            encoding="utf-8",
        )

        config = load_config(environ={
            "THREADS": "5",
            "FORMATS": "original, wav",
            "ALBUM_FROM": "album|title",
            "SLEEP_REQUESTS": "1-3",
            "EXTRACTOR_RETRIES": "infinite",
        })

        assert config.output.directory == (temp_dir / "from-yaml").resolve()
        assert config.conversion.threads == 5
        assert config.conversion.formats == ("original", "wav")
        assert config.conversion.album_from == ("album", "title")
        assert config.extractor.sleep_requests == (1.0, 3.0)
        assert config.extractor.retries == math.inf

    def test_cli_overrides_environment(self, temp_dir, monkeypatch):
        """Test dotted overrides beating the environment; None is ignored"""
        monkeypatch.chdir(temp_dir)
        config = load_config(
            overrides={"output.directory": "cli-out", "conversion.threads": None},
            environ={"OUTPUT_DIR": "env-out", "THREADS": "4"},
        )

        assert config.output.directory == (temp_dir / "cli-out").resolve()
        assert config.conversion.threads == 4

    def test_explicit_sub_directories(self, config_factory, temp_dir):
        """Test library/archive/playlists directories set explicitly"""
        config = config_factory(
            output__library_directory=str(temp_dir / "lib"),
            output__archive_directory=str(temp_dir / "arch"),
            output__playlists_directory=str(temp_dir / "lists"),
        )

        assert config.output.library_directory == (temp_dir / "lib").resolve()
        assert config.output.archive_directory == (temp_dir / "arch").resolve()
        assert config.output.playlists_directory == (temp_dir / "lists").resolve()

    def test_dotenv_file(self, temp_dir, monkeypatch):
        """Test that DOTENV_PATH is loaded into the environment"""
        monkeypatch.chdir(temp_dir)
        # Recorded so teardown removes what the .env file sets
        monkeypatch.setenv("OUTPUT_DIR", "placeholder")
        monkeypatch.delenv("OUTPUT_DIR")

        env_file = temp_dir / "custom.env"
        env_file.write_text(f"OUTPUT_DIR={temp_dir / 'from-dotenv'}\n", encoding="utf-8")
        monkeypatch.setenv("DOTENV_PATH", str(env_file))

        config = load_config()

        assert config.output.directory == (temp_dir / "from-dotenv").resolve()

    def test_missing_explicit_file(self, temp_dir):
        """Test that an explicit config path must exist"""
        with pytest.raises(ConfigError):
            load_config(temp_dir / "nope.yaml", environ={})

    def test_invalid_yaml(self, temp_dir, monkeypatch):
        """Test YAML syntax errors"""
        monkeypatch.chdir(temp_dir)
        path = temp_dir / "broken.yaml"
        path.write_text("output: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path, environ={})

    @pytest.mark.parametrize("key,value", [
        ("conversion.formats", "mp3,ogg"),
        ("conversion.formats", ""),
        ("conversion.threads", 0),
        ("playlists.order", "random"),
        ("playlists.pause_between", -1),
        ("extractor.filename_template", "%(title)s"),
        ("extractor.retries", "many"),
        ("extractor.retry_sleep", "exp=fast"),
        ("extractor.sleep_requests", "3-1"),
        ("extractor.limit_rate", "fast"),
    ])
    def test_invalid_values(self, config_factory, key, value):
        """Test each validation rule"""
        with pytest.raises(ConfigError) as exc_info:
            config_factory(**{key.replace(".", "__"): value})
        assert exc_info.value.details["field"] == key

    def test_missing_cookie_file(self, config_factory, temp_dir):
        """Test that a configured cookie file must exist"""
        with pytest.raises(ConfigError):
            config_factory(extractor__cookie_file=str(temp_dir / "cookies.txt"))

    def test_existing_cookie_file(self, config_factory, temp_dir):
        """Test that an existing cookie file is accepted"""
        cookies = temp_dir / "cookies.txt"
        cookies.write_text("# Netscape HTTP Cookie File\n", encoding="utf-8")
        config = config_factory(extractor__cookie_file=str(cookies))
        assert config.extractor.cookie_file == cookies.resolve()


class TestPlaylistUrls:
    """Test input list reading"""

    def test_file_with_comments(self, config_factory, temp_dir):
        """Test that blank lines and comments are skipped"""
        urls_file = temp_dir / "urls.txt"
        urls_file.write_text(
            "# my sets\n"
            "https://example.com/sets/a\n"
            "\n"
            "   https://example.com/sets/b   \n",
            encoding="utf-8",
        )
        config = config_factory(input_file=str(urls_file))

        assert load_playlist_urls(config) == [
            "https://example.com/sets/a",
            "https://example.com/sets/b",
        ]

    def test_direct_urls_come_first(self, config_factory, temp_dir):
        """Test that --url values precede the input file"""
        urls_file = temp_dir / "urls.txt"
        urls_file.write_text("https://example.com/sets/file\n", encoding="utf-8")
        config = config_factory(input_file=str(urls_file), urls=["https://example.com/sets/cli"])

        assert load_playlist_urls(config) == [
            "https://example.com/sets/cli",
            "https://example.com/sets/file",
        ]

    def test_unreadable_file(self, config_factory, temp_dir):
        """Test a missing input file"""
        config = config_factory(input_file=str(temp_dir / "missing.txt"))
        with pytest.raises(ConfigError):
            load_playlist_urls(config)

    def test_no_urls(self, config_factory, temp_dir):
        """Test an input file with only comments"""
        urls_file = temp_dir / "urls.txt"
        urls_file.write_text("# nothing yet\n\n", encoding="utf-8")
        config = config_factory(input_file=str(urls_file))
        with pytest.raises(ConfigError):
            load_playlist_urls(config)


class TestRetrySleep:
    """Test retry sleep expressions"""

    def test_exponential(self):
        """Test exp=START:LIMIT:BASE"""
        schedule = parse_retry_sleep("exp=2:10:120")
        assert schedule.retry_type == "http"
        assert schedule(0) == 2
        assert schedule(1) == 10

    def test_exponential_default_base(self):
        """Test exp without a base doubles"""
        schedule = parse_retry_sleep("exp=1:100")
        assert [schedule(n) for n in range(4)] == [1, 2, 4, 8]

    def test_linear(self):
        """Test linear=START:LIMIT:STEP"""
        schedule = parse_retry_sleep("linear=1:10:2")
        assert [schedule(n) for n in range(6)] == [1, 3, 5, 7, 9, 10]

    def test_fixed(self):
        """Test a plain number"""
        schedule = parse_retry_sleep("5")
        assert schedule(0) == 5
        assert schedule(7) == 5

    def test_typed(self):
        """Test a retry type prefix"""
        schedule = parse_retry_sleep("fragment:exp=1:20")
        assert schedule.retry_type == "fragment"
        assert schedule.kind == "exp"


class TestSleepRequests:
    """Test request spacing parsing"""

    def test_values(self):
        """Test numbers, strings and ranges"""
        assert parse_sleep_requests(2) == (2.0, 2.0)
        assert parse_sleep_requests("1.5") == (1.5, 1.5)
        assert parse_sleep_requests("1-3") == (1.0, 3.0)
        assert parse_sleep_requests("1 : 3.5") == (1.0, 3.5)

    def test_invalid(self):
        """Test malformed or reversed values"""
        for value in ("soon", "3-1", -1, None):
            with pytest.raises(ConfigError):
                parse_sleep_requests(value)
