"""
Command-line interface for playlist-library.

This module implements the CLI using Click, with rich-click for the output
colors. One command, `plib`, runs the whole pipeline for every playlist URL
in the input list.

Usage:
    # URLs from a file, everything else from config.yaml / .env
    plib --input playlists.txt --out ~/Music/Library

    # A single playlist, only mp3 and flac
    plib --url "https://soundcloud.com/someone/sets/mix" --out out --formats mp3,flac

    # Keep the playlist's own track order in the .m3u8 files
    plib --input playlists.txt --order playlist

Configuration:
    Options given here override environment variables (and .env), which
    override config.yaml. See playlist_library.core.config.

Exit Codes:
    0    Run completed (individual playlists or tracks may have failed;
         see the summary and the logs)
    1    Configuration error
    2    Missing dependency (ffmpeg)
    3    Output directories cannot be created
    4    Other playlist-library error
    130  Interrupted
"""

import sys
from pathlib import Path
from typing import Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.OPTION_GROUPS = {
    "cli": [
        {
            "name": "Input",
            "options": ["--input", "--url", "--config"],
        },
        {
            "name": "Output",
            "options": ["--out", "--playlists-dir", "--formats", "--order"],
        },
        {
            "name": "Advanced Options",
            "options": ["--cookie-file", "--threads", "--pause", "--verbose"],
        },
        {
            "name": "Info",
            "options": ["--version", "--help"],
        },
    ],
}

from playlist_library import __version__
from playlist_library.core import (
    Config,
    ConfigError,
    DependencyMissing,
    OutputError,
    PlaylistLibraryError,
    get_logger,
    load_config,
    load_playlist_urls,
    setup_logging,
    shutdown_logging,
)
from playlist_library.pipeline import Pipeline, RunReport

logger = get_logger(__name__)


@click.command()
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml if present)"
)
@click.option(
    "--input", "input_file",
    type=click.Path(path_type=Path),
    default=None,
    metavar="<urls.txt>",
    help="File with one playlist URL per line"
)
@click.option(
    "--url", "urls",
    multiple=True,
    metavar="<playlist-url>",
    help="Playlist URL (repeatable, processed before --input)"
)
@click.option(
    "--out", "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    metavar="<dir>",
    help="Output root (library, archive, playlists, logs)"
)
@click.option(
    "--playlists-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    metavar="<dir>",
    help="Where .m3u8 files go (default: <out>/playlists)"
)
@click.option(
    "--formats",
    type=str,
    default=None,
    metavar="<list>",
    help="Comma list of original, mp3, wav, flac"
)
@click.option(
    "--order",
    type=click.Choice(["natural", "playlist"], case_sensitive=False),
    default=None,
    help="Playlist entry order (default: natural)"
)
@click.option(
    "--cookie-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    metavar="<cookies.txt>",
    help="Cookies for authenticated access"
)
@click.option(
    "--threads",
    type=click.IntRange(min=1),
    default=None,
    help="Parallel conversions (default: 1)"
)
@click.option(
    "--pause",
    type=click.IntRange(min=0),
    default=None,
    help="Seconds to wait between playlists (default: 2)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show debug output (extractor and ffmpeg messages)"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[Path],
    input_file: Optional[Path],
    urls: tuple[str, ...],
    output_dir: Optional[Path],
    playlists_dir: Optional[Path],
    formats: Optional[str],
    order: Optional[str],
    cookie_file: Optional[Path],
    threads: Optional[int],
    pause: Optional[int],
    verbose: bool,
    version: bool
) -> None:
    """
    playlist-library: Mirror remote playlists into a shared audio library.

    Every track is fetched once into library/original, converted locally
    into each requested format, and listed in one .m3u8 per playlist and
    format with paths relative to the playlist file.

    \b
    BASIC USAGE:
        plib --input playlists.txt --out ~/Music/Library
        plib --url "https://..." --out out --formats mp3,flac

    \b
    RE-RUNS:
        Tracks already in the library are not fetched again and existing
        conversions are kept. Adding a format converts only that format.
    """
    if version:
        click.echo(f"playlist-library {__version__}")
        ctx.exit(0)

    overrides = {
        "input_file": str(input_file) if input_file else None,
        "urls": list(urls) if urls else None,
        "output.directory": str(output_dir) if output_dir else None,
        "output.playlists_directory": str(playlists_dir) if playlists_dir else None,
        "conversion.formats": formats,
        "conversion.threads": threads,
        "extractor.cookie_file": str(cookie_file) if cookie_file else None,
        "playlists.order": order,
        "playlists.pause_between": pause,
    }

    _run(config_path, overrides, verbose)


def _run(config_path: Optional[Path], overrides: dict, verbose: bool) -> None:
    """
    Execute a full run.

    This is the main orchestration function that:
    1. Loads configuration and the URL list
    2. Sets up logging
    3. Checks dependencies and prepares the output directories
    4. Processes every playlist
    5. Reports per-playlist entry counts

    Raises:
        SystemExit: On fatal errors (with appropriate exit code).
    """
    try:
        config = load_config(config_path, overrides=overrides)
        urls = load_playlist_urls(config)

        setup_logging(config.output.directory, verbose=verbose)
        logger.info(f"playlist-library {__version__} starting")
        _log_configuration(config, len(urls))

        pipeline = Pipeline(config, show_progress=sys.stderr.isatty())
        pipeline.check_dependencies()
        pipeline.prepare()

        report = pipeline.run(urls)
        _print_summary(report)

        logger.info("playlist-library completed")

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except DependencyMissing as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(e.message)
        sys.exit(2)

    except OutputError as e:
        click.echo(f"Output error: {e.message}", err=True)
        logger.error(f"Output error: {e.message}", exc_info=True)
        sys.exit(3)

    except PlaylistLibraryError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()


def _log_configuration(config: Config, url_count: int) -> None:
    """Log the effective settings at debug level, and a one-line overview."""
    logger.info(
        f"{url_count} playlist(s), formats: {', '.join(config.conversion.formats)}"
    )
    logger.debug(f"Library:   {config.output.library_directory}")
    logger.debug(f"Archive:   {config.output.archive_directory}")
    logger.debug(f"Playlists: {config.output.playlists_directory}")
    logger.debug(f"Order:     {config.playlists.order}")
    logger.debug(f"Threads:   {config.conversion.threads}")


def _print_summary(report: RunReport) -> None:
    """Log per-playlist entry counts so omissions are visible at a glance."""
    logger.info("=" * 60)
    logger.info("SUMMARY")
    logger.info("=" * 60)
    for line in report.summary_lines():
        logger.info(line)
    if report.failed:
        logger.warning(f"{len(report.failed)} playlist(s) skipped")
    logger.info("=" * 60)


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `plib` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()
