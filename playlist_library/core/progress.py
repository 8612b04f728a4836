"""
Progress bar handling for playlist-library using the Rich library.

Resolution and the fetch batch are single blocking extractor calls, so only
the per-track conversion step gets a progress bar: one ConversionProgressBar
per playlist, counting every (track, format) pair.

Layout:
    Some DJ - Summer Mi…   ✓ 20  ✗ 1  ⊘ 43        ━━━━━━━━━━━━━━━━━━━━  98%

Usage:
    from playlist_library.core.progress import ConversionProgressBar

    with ConversionProgressBar(total=24, description="Converting") as progress:
        for pair in pairs:
            result = convert(pair)
            progress.update(success=result is not None)
"""

import threading
from typing import Optional

from rich import get_console
from rich.markup import escape
from rich.progress import BarColumn, Progress, ProgressColumn, Task, TaskID
from rich.style import StyleType
from rich.text import Text
from rich.theme import Theme


# =============================================================================
# Theme
# =============================================================================

PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(165,66,129)",
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(165,66,129)",
    "progress.percentage": "white",
})


# =============================================================================
# Columns
# =============================================================================

class SizedTextColumn(ProgressColumn):
    """
    Markup text column cut to a fixed width.

    Playlist names can be arbitrarily long; a fixed width keeps the bar
    itself from jumping around between playlists.
    """

    def __init__(self, text_format: str, width: int, style: StyleType = "none") -> None:
        self.text_format = text_format
        self.width = width
        self.style = style
        super().__init__()

    def render(self, task: Task) -> Text:
        text = Text.from_markup(self.text_format.format(task=task), style=self.style)
        text.truncate(max_width=self.width, overflow="ellipsis", pad=True)
        return text


# =============================================================================
# Conversion Progress Bar
# =============================================================================

class ConversionProgressBar:
    """
    Progress bar for the conversion step of one playlist.

    Counts:
        converted: ffmpeg produced the target
        failed:    no target afterwards
        skipped:   target already present, nothing ran

    update() may be called from conversion worker threads. A disabled bar
    draws nothing but still counts.

    Attributes:
        total: Number of (track, format) pairs.
        description: Shown on the left (the playlist name).
        completed: Pairs finished so far.
    """

    def __init__(self, total: int, description: str = "Converting", enabled: bool = True):
        self.total = total
        self.description = description
        self.completed = 0
        self.converted = 0
        self.failed = 0
        self.skipped = 0

        self.console = get_console()
        self.progress = Progress(
            SizedTextColumn("[white]{task.description}", width=20),
            SizedTextColumn("{task.fields[status]}", width=35, style="white"),
            BarColumn(bar_width=40, finished_style="green"),
            "[progress.percentage]{task.percentage:>3.0f}%",
            console=self.console,
            transient=False,
            refresh_per_second=10,
            disable=not enabled,
        )

        self.task_id: Optional[TaskID] = None
        self._lock = threading.Lock()

    def __enter__(self) -> "ConversionProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        """Show the bar. Pushes the progress theme onto the console."""
        if self.task_id is not None:
            return
        self.console.push_theme(PROGRESS_THEME)
        self.progress.start()
        self.task_id = self.progress.add_task(
            description=escape(self.description),
            total=self.total,
            status=self._status_text(),
        )

    def stop(self) -> None:
        """Remove the bar and restore the console theme."""
        if self.task_id is None:
            return
        self.progress.stop()
        self.task_id = None
        self.console.pop_theme()

    def _status_text(self) -> str:
        parts = [
            f"[green]✓ {self.converted}[/green]",
            f"[red]✗ {self.failed}[/red]",
        ]
        if self.skipped > 0:
            parts.append(f"[dim]⊘ {self.skipped}[/dim]")
        return "  ".join(parts)

    def update(self, success: bool, skipped: bool = False) -> None:
        """
        Record one finished (track, format) pair.

        Args:
            success: Whether a target file is available after the call.
            skipped: Whether the target already existed (no transcode ran).
        """
        with self._lock:
            self.completed += 1
            if skipped:
                self.skipped += 1
            elif success:
                self.converted += 1
            else:
                self.failed += 1

            if self.task_id is not None:
                self.progress.update(
                    self.task_id,
                    completed=self.completed,
                    status=self._status_text(),
                )
