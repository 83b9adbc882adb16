"""Parsing helpers for system files and command output."""

import re
from typing import Optional

_SIZE_FACTORS = {
    "": 1,
    "B": 1,
    "K": 1000,
    "KB": 1000,
    "KI": 1024,
    "KIB": 1024,
    "M": 1000 ** 2,
    "MB": 1000 ** 2,
    "MI": 1024 ** 2,
    "MIB": 1024 ** 2,
    "G": 1000 ** 3,
    "GB": 1000 ** 3,
    "GI": 1024 ** 3,
    "GIB": 1024 ** 3,
    "T": 1000 ** 4,
    "TB": 1000 ** 4,
    "TI": 1024 ** 4,
    "TIB": 1024 ** 4,
}

_SIZE_RE = re.compile(r"^(\d+)\s*([A-Za-z]*)$")


def parse_int(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    try:
        return int(text.strip())
    except ValueError:
        return None


def parse_float(text: Optional[str]) -> Optional[float]:
    if text is None:
        return None
    try:
        return float(text.strip())
    except ValueError:
        return None


def parse_size_human(text: str) -> Optional[int]:
    """
    Parse a size such as "100M", "1G" or "512KiB" into bytes.

    K/M/G/T are decimal (1000), Ki/Mi/Gi/Ti binary (1024). Returns None for
    anything unparseable.
    """
    match = _SIZE_RE.match(text.strip())
    if not match:
        return None
    factor = _SIZE_FACTORS.get(match.group(2).upper())
    if factor is None:
        return None
    return int(match.group(1)) * factor
