"""
Disk Space Diagnostics

Walks a directory tree (bounded depth) to find what is using space: the
filesystem fill level, large files, old files and heavy directories.
"""

import logging
import os
import shutil
import stat
import time
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from whydiag.core.base import BaseDiagnostic, ModuleConfig
from whydiag.core.report import DiagnosticReport, Finding, Metric, Recommendation, Threshold
from whydiag.core.severity import Severity
from whydiag.utils.format import format_bytes
from whydiag.utils.parse import parse_size_human

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class WalkResult:
    """Totals collected by a bounded directory walk."""

    def __init__(self):
        self.total_size = 0
        self.file_count = 0
        self.dir_sizes: Dict[str, int] = defaultdict(int)
        self.large_files: List[Tuple[str, int]] = []
        self.old_files: List[Tuple[str, float]] = []


def walk_tree(root: Path, max_depth: int, include_hidden: bool = False,
              larger_than: Optional[int] = None, older_than_days: Optional[int] = None,
              now: Optional[float] = None) -> WalkResult:
    """
    Sum regular file sizes under ``root`` without following symlinks.

    Files directly inside ``root`` are at depth 1; nothing deeper than
    ``max_depth`` is visited. Unreadable entries are skipped.
    """
    now = time.time() if now is None else now
    result = WalkResult()
    root_str = str(root)
    base_depth = root_str.rstrip(os.sep).count(os.sep)

    for dirpath, dirnames, filenames in os.walk(root_str, followlinks=False):
        level = dirpath.rstrip(os.sep).count(os.sep) - base_depth
        if level + 1 >= max_depth:
            dirnames[:] = []
        elif not include_hidden:
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        if level + 1 > max_depth:
            continue

        for fname in filenames:
            if not include_hidden and fname.startswith("."):
                continue
            fpath = os.path.join(dirpath, fname)
            try:
                st = os.lstat(fpath)
            except OSError:
                continue
            if not stat.S_ISREG(st.st_mode):
                continue

            result.total_size += st.st_size
            result.file_count += 1
            result.dir_sizes[dirpath] += st.st_size
            if larger_than is not None and st.st_size >= larger_than:
                result.large_files.append((fpath, st.st_size))
            if older_than_days is not None:
                age_days = (now - st.st_mtime) / SECONDS_PER_DAY
                if age_days >= older_than_days:
                    result.old_files.append((fpath, age_days))

    return result


class DiskDiagnostic(BaseDiagnostic):
    """Analyze disk space usage and find large or old files."""

    name = "disk"
    description = "Analyze disk space usage and find large or old files"
    is_quick = False

    DEFAULT_PATH = "/"
    DEFAULT_DEPTH = 3
    MAX_DEPTH = 5
    WARN_USED_PERCENT = 85.0
    CRIT_USED_PERCENT = 95.0
    BIG_DIR_BYTES = 100 * 1024 * 1024
    BIG_DIR_LIMIT = 10
    CLEANUP_TOTAL_BYTES = 50 * 1024 ** 3

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        path = Path(config.get_str("path", self.DEFAULT_PATH))
        depth = min(max(config.get_int("depth", self.DEFAULT_DEPTH), 0), self.MAX_DEPTH)
        older_than = config.get_int("old")
        include_hidden = config.get_bool("hidden", False)
        larger_than = None
        large_option = config.get_str("large")
        if large_option is not None:
            larger_than = parse_size_human(large_option)
            if larger_than is None:
                logger.warning(f"Ignoring unparseable size option large={large_option!r}")

        report = self.new_report("Disk space analysis")
        if not path.exists():
            report.summary = "Path not found"
            report.add_finding(Finding(
                severity=Severity.WARNING,
                category="disk",
                message=f"Path does not exist: {path}",
            ))
            return report

        report.add_metric(Metric("Path analyzed", str(path)))
        self._check_filesystem(report, path)

        result = walk_tree(path, depth, include_hidden, larger_than, older_than)
        report.add_metric(Metric("Total size (sampled)", format_bytes(result.total_size)))
        report.add_metric(Metric("Files scanned", result.file_count))

        result.large_files.sort(key=lambda f: f[1], reverse=True)
        for fpath, size in result.large_files[: config.top_n]:
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="file",
                message=f"{fpath} - {format_bytes(size)}",
                details="Consider moving or compressing.",
            ))

        result.old_files.sort(key=lambda f: f[1], reverse=True)
        for fpath, age_days in result.old_files[: config.top_n]:
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="file",
                message=f"{fpath} - last modified {age_days:.0f} days ago",
                details="Old files are candidates for archiving or deletion.",
            ))

        big_dirs = sorted(result.dir_sizes.items(), key=lambda d: d[1], reverse=True)
        for dir_path, size in big_dirs[: self.BIG_DIR_LIMIT]:
            if size > self.BIG_DIR_BYTES:
                report.add_finding(Finding(
                    severity=Severity.INFO,
                    category="directory",
                    message=f"{dir_path} uses {format_bytes(size)}",
                ))

        if result.total_size > self.CLEANUP_TOTAL_BYTES:
            report.add_recommendation(Recommendation(
                priority=2,
                action="Review large directories (e.g. /var/log, caches) and clean old data",
                command="du -sh /var/log/* 2>/dev/null | sort -hr | head -10",
                explanation="Logs and caches often consume significant space.",
            ))
        return report

    def _check_filesystem(self, report: DiagnosticReport, path: Path) -> None:
        try:
            usage = shutil.disk_usage(path)
        except OSError as e:
            logger.debug(f"disk_usage({path}) failed: {e}")
            return
        if usage.total <= 0:
            return

        used_percent = usage.used / usage.total * 100
        report.add_metric(Metric("Filesystem free", format_bytes(usage.free)))
        report.add_metric(Metric(
            "Filesystem used", round(used_percent, 2), "%",
            Threshold(self.WARN_USED_PERCENT, self.CRIT_USED_PERCENT),
        ))

        if used_percent >= self.CRIT_USED_PERCENT:
            severity = Severity.CRITICAL
        elif used_percent >= self.WARN_USED_PERCENT:
            severity = Severity.WARNING
        else:
            return
        report.add_finding(Finding(
            severity=severity,
            category="filesystem",
            message=f"Filesystem holding {path} is {used_percent:.1f}% full",
            details=f"Only {format_bytes(usage.free)} free",
        ))
        report.add_recommendation(Recommendation(
            priority=1 if severity == Severity.CRITICAL else 3,
            action="Free up space on the filesystem",
            command="sudo journalctl --vacuum-size=200M",
            explanation="A full filesystem makes writes fail and can stop services.",
        ))
