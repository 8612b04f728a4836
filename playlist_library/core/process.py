"""
External process execution for playlist-library.

The transcoder runs as a child process. Its stdout and stderr are drained
concurrently by one reader thread per stream, line by line, so neither pipe
can fill up and block the child, and every line reaches the log as soon as
it is written. Both readers are joined once the process has exited.

Usage:
    from playlist_library.core.process import run_process

    result = run_process(
        ["ffmpeg", "-version"],
        on_stderr=lambda line: logger.debug(f"ffmpeg: {line}")
    )
    if result.returncode != 0:
        ...
"""

import subprocess
import threading
from dataclasses import dataclass
from typing import IO, Callable, Sequence

from playlist_library.core.exceptions import DependencyMissing
from playlist_library.core.logger import get_logger


logger = get_logger(__name__)

LineCallback = Callable[[str], None]


@dataclass(frozen=True)
class ProcessResult:
    """
    Outcome of one external process run.

    Attributes:
        returncode: Process exit status.
        stdout: Everything the process wrote to stdout.
    """
    returncode: int
    stdout: str


def _drain(stream: IO[str], sink: list[str], callback: LineCallback | None) -> None:
    """Read a stream to EOF, collecting lines and forwarding them."""
    try:
        for line in stream:
            sink.append(line)
            if callback is not None:
                callback(line.rstrip("\r\n"))
    finally:
        stream.close()


def run_process(
    args: Sequence[str],
    on_stdout: LineCallback | None = None,
    on_stderr: LineCallback | None = None,
    timeout: float | None = None
) -> ProcessResult:
    """
    Run an external process to completion.

    Args:
        args: Program and arguments. No shell is involved.
        on_stdout: Called with each stdout line (newline stripped).
        on_stderr: Called with each stderr line (newline stripped).
        timeout: Optional limit in seconds for the whole run.

    Returns:
        ProcessResult: Exit status and collected stdout.

    Raises:
        FileNotFoundError / OSError: If the program cannot be started.
        subprocess.TimeoutExpired: If the timeout elapsed. The process is
            killed and its readers joined before this propagates.

    Note:
        Callbacks run on the reader threads.
    """
    process = subprocess.Popen(
        list(args),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
    )

    stdout_lines: list[str] = []
    stderr_lines: list[str] = []
    readers = [
        threading.Thread(
            target=_drain, args=(process.stdout, stdout_lines, on_stdout), daemon=True
        ),
        threading.Thread(
            target=_drain, args=(process.stderr, stderr_lines, on_stderr), daemon=True
        ),
    ]
    for reader in readers:
        reader.start()

    try:
        returncode = process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()
        raise
    finally:
        for reader in readers:
            reader.join()

    return ProcessResult(returncode=returncode, stdout="".join(stdout_lines))


def require_binary(binary: str, version_arg: str = "-version") -> None:
    """
    Check that an external binary can be executed.

    Args:
        binary: Executable name or path.
        version_arg: Argument that makes the binary print its version and
                     exit 0.

    Raises:
        DependencyMissing: If the binary cannot be started or exits non-zero.
    """
    try:
        result = run_process([binary, version_arg], timeout=30)
    except (OSError, subprocess.TimeoutExpired) as e:
        raise DependencyMissing(
            f"Missing dependency: {binary}. Please install it and ensure it's in PATH.",
            details={"binary": binary, "original_error": str(e)}
        ) from e

    if result.returncode != 0:
        raise DependencyMissing(
            f"Dependency check failed: '{binary} {version_arg}' exited with code {result.returncode}",
            details={"binary": binary, "exit_status": result.returncode}
        )

    first_line = result.stdout.splitlines()[0] if result.stdout else binary
    logger.debug(f"Found {first_line}")
