"""Test the external process runner"""

import subprocess
import sys

import pytest

from playlist_library.core.exceptions import DependencyMissing
from playlist_library.core.process import require_binary, run_process


class TestRunProcess:
    """Test run_process"""

    def test_collects_stdout_and_forwards_lines(self):
        """Test that both streams are drained line by line"""
        script = (
            "import sys\n"
            "for i in range(3):\n"
            "    print(f'out {i}')\n"
            "    print(f'err {i}', file=sys.stderr)\n"
        )
        stdout_lines, stderr_lines = [], []

        result = run_process(
            [sys.executable, "-c", script],
            on_stdout=stdout_lines.append,
            on_stderr=stderr_lines.append,
        )

        assert result.returncode == 0
        assert result.stdout.splitlines() == ["out 0", "out 1", "out 2"]
        assert stdout_lines == ["out 0", "out 1", "out 2"]
        assert stderr_lines == ["err 0", "err 1", "err 2"]

    def test_large_stderr_does_not_block(self):
        """Test a child writing more than a pipe buffer to stderr"""
        script = "import sys\nsys.stderr.write('x' * 200000 + '\\n')\nprint('done')\n"

        result = run_process([sys.executable, "-c", script], timeout=60)

        assert result.returncode == 0
        assert result.stdout.strip() == "done"

    def test_exit_status(self):
        """Test that a non-zero exit is returned, not raised"""
        result = run_process([sys.executable, "-c", "import sys; sys.exit(3)"])
        assert result.returncode == 3

    def test_timeout(self):
        """Test that an overdue process is killed"""
        with pytest.raises(subprocess.TimeoutExpired):
            run_process([sys.executable, "-c", "import time; time.sleep(30)"], timeout=0.5)

    def test_missing_program(self):
        """Test that a missing program raises OSError"""
        with pytest.raises(OSError):
            run_process(["playlist-library-no-such-binary"])


class TestRequireBinary:
    """Test require_binary"""

    def test_available(self):
        """Test a binary that runs"""
        require_binary(sys.executable, "--version")

    def test_missing(self):
        """Test a binary that cannot be started"""
        with pytest.raises(DependencyMissing) as exc_info:
            require_binary("playlist-library-no-such-binary")
        assert exc_info.value.details["binary"] == "playlist-library-no-such-binary"

    def test_failing(self):
        """Test a binary whose version check exits non-zero"""
        with pytest.raises(DependencyMissing):
            require_binary(sys.executable, "-c")
