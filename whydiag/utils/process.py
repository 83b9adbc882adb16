"""Process helpers reading /proc/<pid>."""

from pathlib import Path
from typing import Dict, Optional

PROC_ROOT = Path("/proc")


def process_name(pid: int, proc_root: Path = PROC_ROOT) -> str:
    """Name from /proc/<pid>/comm, falling back to the first cmdline word."""
    base = Path(proc_root) / str(pid)
    try:
        name = (base / "comm").read_text().strip()
    except OSError:
        try:
            cmdline = (base / "cmdline").read_text().replace("\0", " ").split()
        except OSError:
            cmdline = []
        name = cmdline[0] if cmdline else ""
    return name or f"[pid {pid}]"


def parse_status(pid: int, proc_root: Path = PROC_ROOT) -> Dict[str, str]:
    """Key/value pairs from /proc/<pid>/status (empty if unreadable)."""
    try:
        content = (Path(proc_root) / str(pid) / "status").read_text()
    except OSError:
        return {}
    status = {}
    for line in content.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            status[key.strip()] = value.strip()
    return status


def process_uid(pid: int, proc_root: Path = PROC_ROOT) -> Optional[int]:
    """Real UID of a process, or None if unknown."""
    uid_field = parse_status(pid, proc_root).get("Uid")
    if not uid_field:
        return None
    try:
        return int(uid_field.split()[0])
    except (ValueError, IndexError):
        return None
