"""File helpers for /proc and /sys style pseudo-files."""

from pathlib import Path
from typing import List, Optional


def read_file_optional(path: Path) -> Optional[str]:
    """
    Read a file if it exists.

    Returns None when the path does not exist; other I/O errors (e.g.
    permission denied) propagate.
    """
    path = Path(path)
    if not path.exists():
        return None
    return path.read_text(errors="replace")


def read_first_line(path: Path) -> Optional[str]:
    """First line of a file (without newline), or None if missing/unreadable."""
    try:
        content = read_file_optional(path)
    except OSError:
        return None
    if content is None:
        return None
    lines = content.splitlines()
    return lines[0] if lines else ""


def list_dir(path: Path) -> List[Path]:
    """Sorted entries of a directory; empty if it is missing or unreadable."""
    path = Path(path)
    if not path.is_dir():
        return []
    try:
        return sorted(path.iterdir())
    except OSError:
        return []
