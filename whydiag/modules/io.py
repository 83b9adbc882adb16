"""
Disk I/O Diagnostics

Reports cumulative per-device traffic from /proc/diskstats and the
processes that have read or written the most.
"""

from pathlib import Path
from typing import List, NamedTuple, Optional, Tuple

from whydiag.core.base import BaseDiagnostic, ModuleConfig, Permission
from whydiag.core.errors import ExecutionError
from whydiag.core.report import DiagnosticReport, Finding, Metric, Recommendation
from whydiag.core.severity import Severity
from whydiag.utils.files import list_dir
from whydiag.utils.format import format_bytes
from whydiag.utils.process import process_name

SECTOR_SIZE = 512
SKIPPED_DEVICE_PREFIXES = ("ram", "loop")


class DeviceIO(NamedTuple):
    name: str
    read_bytes: int
    write_bytes: int


class ProcessIO(NamedTuple):
    pid: int
    name: str
    read_bytes: int
    write_bytes: int

    @property
    def total(self) -> int:
        return self.read_bytes + self.write_bytes


def parse_diskstats(content: str) -> List[DeviceIO]:
    """Per-device (name, bytes read, bytes written) from /proc/diskstats."""
    devices = []
    for line in content.splitlines():
        fields = line.split()
        if len(fields) < 10:
            continue
        try:
            read_sectors = int(fields[5])
            write_sectors = int(fields[9])
        except ValueError:
            continue
        devices.append(DeviceIO(fields[2], read_sectors * SECTOR_SIZE, write_sectors * SECTOR_SIZE))
    return devices


def read_process_io(pid_dir: Path) -> Optional[Tuple[int, int]]:
    """(read_bytes, write_bytes) from /proc/<pid>/io, None if unreadable."""
    try:
        content = (pid_dir / "io").read_text()
    except OSError:
        return None
    counters = {}
    for line in content.splitlines():
        key, _, value = line.partition(":")
        counters[key.strip()] = value.strip()
    try:
        return int(counters["read_bytes"]), int(counters["write_bytes"])
    except (KeyError, ValueError):
        return None


class IoDiagnostic(BaseDiagnostic):
    """Explain high disk I/O and identify top readers/writers."""

    name = "io"
    description = "Explain high disk I/O and identify top readers/writers"
    # Other users' /proc/<pid>/io is only readable as root
    permissions = frozenset({Permission.READ_PROC, Permission.ROOT})
    is_quick = True

    PROC_ROOT = Path("/proc")
    PROCESS_MIN_BYTES = 10 * 1024 * 1024

    @property
    def diskstats_path(self) -> Path:
        return self.PROC_ROOT / "diskstats"

    def is_available(self) -> bool:
        return self.diskstats_path.exists()

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        device_filter = config.get_str("device")
        report = self.new_report("Disk I/O analysis")

        try:
            devices = parse_diskstats(self.diskstats_path.read_text())
        except OSError as e:
            raise ExecutionError(self.name, f"cannot read {self.diskstats_path}: {e}", cause=e) from e

        for device in devices:
            if device.name.startswith(SKIPPED_DEVICE_PREFIXES):
                continue
            if device_filter and device_filter not in device.name:
                continue
            if device.read_bytes + device.write_bytes == 0:
                continue
            report.add_metric(Metric(f"{device.name} read", format_bytes(device.read_bytes)))
            report.add_metric(Metric(f"{device.name} write", format_bytes(device.write_bytes)))

        min_bytes = 1 if config.verbose else self.PROCESS_MIN_BYTES
        processes = [p for p in self._process_io() if p.total >= min_bytes]
        processes.sort(key=lambda p: p.total, reverse=True)
        for proc in processes[: config.top_n]:
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="process",
                message=(f"{proc.name} (PID {proc.pid}) - read {format_bytes(proc.read_bytes)}, "
                         f"write {format_bytes(proc.write_bytes)}"),
                details="Cumulative I/O since process start.",
            ))

        if not report.findings and not report.metrics:
            report.summary = "No significant disk I/O detected"
        else:
            report.add_recommendation(Recommendation(
                priority=2,
                action="Use iotop or 'pidstat -d' for live I/O monitoring",
                command="iotop -o -b -n 3",
                explanation="Identify processes causing I/O spikes.",
            ))
        return report

    def _process_io(self) -> List[ProcessIO]:
        processes = []
        for entry in list_dir(self.PROC_ROOT):
            if not entry.name.isdigit():
                continue
            counters = read_process_io(entry)
            if counters is None:
                continue
            pid = int(entry.name)
            processes.append(ProcessIO(pid, process_name(pid, self.PROC_ROOT), *counters))
        return processes
