"""
Utility functions for playlist-library.

This module provides common utility functions used across the application:
    - Filesystem-safe naming for playlist folders and files
    - Directory creation
    - Threading utilities for parallel conversion

Usage:
    from playlist_library.utils import (
        safe_name,
        ensure_directory,
        run_in_parallel
    )
"""

import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Iterable, TypeVar

from playlist_library.core.logger import get_logger

logger = get_logger(__name__)


# Type variables for generic parallel processing
T = TypeVar("T")
R = TypeVar("R")

_UNSAFE_CHARS_RE = re.compile(r"[^\w\-. ]")
_WHITESPACE_RE = re.compile(r"\s+")


def safe_name(name: str) -> str:
    """
    Make a string safe to use as a file or folder name.

    Every character that is not a letter, a digit, '-', '_', '.' or a
    space becomes '_'. Runs of whitespace collapse to one space and the
    result is trimmed.

    Args:
        name: The string to sanitize (e.g., "uploader - title [id]").

    Returns:
        Sanitized string.

    Examples:
        safe_name("AC/DC - Live: 1991 [42]")  # "AC_DC - Live_ 1991 _42_"
        safe_name("  Café   Mix ")            # "Café Mix"
    """
    name = _UNSAFE_CHARS_RE.sub("_", name)
    name = _WHITESPACE_RE.sub(" ", name)
    return name.strip()


def ensure_directory(path: Path) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Path to the directory.

    Returns:
        The same path (for chaining).

    Raises:
        OSError: If directory cannot be created (permissions, etc.)
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def run_in_parallel(
    func: Callable[[T], R],
    items: Iterable[T],
    num_threads: int = 4,
    on_result: Callable[[T, R | Exception], None] | None = None
) -> list[tuple[T, R | Exception]]:
    """
    Run a function on multiple items, in parallel when num_threads > 1.

    Args:
        func: Function to call for each item. Takes one argument.
        items: Iterable of items to process.
        num_threads: Number of worker threads. 1 runs inline, in order.
        on_result: Optional callback invoked with (item, result) as each
                   item finishes, on the calling thread.

    Returns:
        List of (item, result) tuples in input order, where result is
        either the return value or the Exception the call raised.

    Error Handling:
        Exceptions are caught and returned in the result tuple.
        Processing continues for other items.

    Example:
        results = run_in_parallel(convert_pair, pairs, num_threads=4)

        for pair, result in results:
            if isinstance(result, Exception):
                print(f"Failed: {pair} - {result}")
    """
    items_list = list(items)
    results: dict[int, R | Exception] = {}

    def record(index: int, result: R | Exception) -> None:
        results[index] = result
        if on_result is not None:
            on_result(items_list[index], result)

    if num_threads <= 1:
        for index, item in enumerate(items_list):
            try:
                record(index, func(item))
            except Exception as e:
                record(index, e)
    else:
        with ThreadPoolExecutor(max_workers=num_threads) as executor:
            future_to_index = {
                executor.submit(func, item): index
                for index, item in enumerate(items_list)
            }

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    record(index, future.result())
                except Exception as e:
                    record(index, e)

    return [(item, results[index]) for index, item in enumerate(items_list)]
