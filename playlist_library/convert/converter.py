"""
Format converter for playlist-library.

Transcodes library originals into mp3, wav or flac siblings with ffmpeg,
tagging them from the fetch sidecar and embedding the artwork where the
container supports it.

Conversion is idempotent: an existing target is returned as is and ffmpeg
is not started. Output is written to "<target>.part" and renamed into place
only after ffmpeg exits 0, so an interrupted transcode never leaves a file
that looks finished.

Format policy:
    mp3:  first audio stream, optional cover (attached picture),
          libmp3lame VBR (-q:a), ID3v2.3 tags
    flac: first audio stream, optional cover (attached picture), flac
    wav:  first audio stream, 16-bit PCM, no cover

Usage:
    converter = FormatConverter("ffmpeg", quality="0")
    result = converter.convert(source, target, "mp3", tags, artwork)
    if result is None:
        # skip this track for this format
        ...
"""

import os
import subprocess
from pathlib import Path

import ffmpeg

from playlist_library.convert.tags import TrackTags
from playlist_library.core.exceptions import ConversionFailure
from playlist_library.core.logger import get_logger
from playlist_library.core.process import run_process

logger = get_logger(__name__)


FORMATS = ("mp3", "wav", "flac")

# Formats whose container can carry an attached cover picture
COVER_FORMATS = ("mp3", "flac")

AUDIO_CODECS = {
    "mp3": "libmp3lame",
    "flac": "flac",
    "wav": "pcm_s16le",
}

# Per-transcode limit in seconds
DEFAULT_TIMEOUT = 1800


def build_command(
    ffmpeg_bin: str,
    source: Path,
    output: Path,
    fmt: str,
    tags: TrackTags,
    artwork: Path | None = None,
    quality: str = "0"
) -> list[str]:
    """
    Build the ffmpeg command line for one transcode.

    Args:
        ffmpeg_bin: ffmpeg executable.
        source: Original audio file.
        output: File to write (the .part path).
        fmt: Target format, one of FORMATS.
        tags: Tags to write.
        artwork: Cover image. Ignored for wav or when the file is missing.
        quality: LAME VBR quality for mp3.

    Returns:
        Argument list, program first.

    Raises:
        ConversionFailure: If fmt is not supported.
    """
    if fmt not in AUDIO_CODECS:
        raise ConversionFailure(
            f"Unsupported target format: {fmt}",
            details={"format": fmt}
        )

    streams = [ffmpeg.input(str(source))["a:0"]]
    output_args: dict[str, str] = {
        "format": fmt,
        "acodec": AUDIO_CODECS[fmt],
    }

    if fmt in COVER_FORMATS and artwork is not None and artwork.is_file():
        streams.append(ffmpeg.input(str(artwork))["0"])
        output_args["vcodec"] = "mjpeg"
        output_args["disposition:v:0"] = "attached_pic"

    if fmt == "mp3":
        output_args["q:a"] = quality
        output_args["id3v2_version"] = "3"

    for index, (key, value) in enumerate(tags.metadata()):
        output_args[f"metadata:g:{index}"] = f"{key}={value}"

    stream = (
        ffmpeg
        .output(*streams, str(output), **output_args)
        .global_args("-nostdin", "-hide_banner", "-loglevel", "warning")
    )
    return ffmpeg.compile(stream, cmd=ffmpeg_bin, overwrite_output=True)


class FormatConverter:
    """
    Idempotent transcoder of library originals.

    Thread Safety:
        convert() may run concurrently for distinct targets.

    Attributes:
        ffmpeg_bin: ffmpeg executable.
        quality: LAME VBR quality used for mp3.
        timeout: Per-transcode limit in seconds.
    """

    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        quality: str = "0",
        timeout: float | None = DEFAULT_TIMEOUT
    ) -> None:
        self.ffmpeg_bin = ffmpeg_bin
        self.quality = quality
        self.timeout = timeout

    def convert(
        self,
        source: Path,
        target: Path,
        fmt: str,
        tags: TrackTags,
        artwork: Path | None = None
    ) -> Path | None:
        """
        Produce target from source unless it already exists.

        Args:
            source: Original audio file.
            target: Converted file to produce.
            fmt: Target format, one of FORMATS.
            tags: Tags to write.
            artwork: Optional cover image (mp3 and flac only).

        Returns:
            target when it exists afterwards (already present or just
            converted), None when the pair must be skipped.

        Note:
            Never raises for conversion problems. Failures are logged and
            reported as None.
        """
        if target.exists():
            logger.debug(f"Already converted: {target.name}")
            return target

        try:
            self._transcode(source, target, fmt, tags, artwork)
        except ConversionFailure as e:
            logger.debug(f"Conversion failed: {e.message} {e.details}")
            return None

        logger.debug(f"Converted: {target.name}")
        return target

    def _transcode(
        self,
        source: Path,
        target: Path,
        fmt: str,
        tags: TrackTags,
        artwork: Path | None
    ) -> None:
        """
        Run ffmpeg into a .part file and move it into place.

        Raises:
            ConversionFailure: On a missing source, an unsupported format,
                a process that cannot start, times out or exits non-zero.
        """
        if not source.is_file():
            raise ConversionFailure(
                f"Source file missing: {source}",
                details={"source": str(source)}
            )

        part = target.with_name(target.name + ".part")
        command = build_command(
            self.ffmpeg_bin, source, part, fmt, tags, artwork, self.quality
        )

        stderr_tail: list[str] = []

        def on_stderr(line: str) -> None:
            if line:
                stderr_tail.append(line)
                del stderr_tail[:-5]
                logger.debug(f"ffmpeg: {line}")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            result = run_process(command, on_stderr=on_stderr, timeout=self.timeout)

            if result.returncode != 0:
                raise ConversionFailure(
                    f"ffmpeg exited with code {result.returncode}",
                    details={"target": str(target), "stderr": " | ".join(stderr_tail)}
                )

            os.replace(part, target)
        except subprocess.TimeoutExpired as e:
            raise ConversionFailure(
                f"ffmpeg timed out after {self.timeout}s",
                details={"target": str(target)}
            ) from e
        except OSError as e:
            raise ConversionFailure(
                f"Could not run ffmpeg: {e}",
                details={"target": str(target), "original_error": str(e)}
            ) from e
        finally:
            if part.exists():
                part.unlink(missing_ok=True)
