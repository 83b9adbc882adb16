"""
Mount Diagnostics

Reads /proc/mounts for read-only and network mounts and cross-checks
/etc/fstab for entries that are configured but not mounted.
"""

from pathlib import Path
from typing import List, NamedTuple

from whydiag.core.base import BaseDiagnostic, ModuleConfig, Permission
from whydiag.core.errors import ExecutionError
from whydiag.core.report import DiagnosticReport, Finding, Metric, Recommendation
from whydiag.core.severity import Severity
from whydiag.utils.files import read_file_optional

# Filesystems that are read-only by nature or not backed by storage
PSEUDO_FILESYSTEMS = frozenset({
    "autofs", "binfmt_misc", "bpf", "cgroup", "cgroup2", "configfs", "debugfs",
    "devpts", "devtmpfs", "efivarfs", "fusectl", "hugetlbfs", "iso9660", "mqueue",
    "nsfs", "proc", "pstore", "ramfs", "securityfs", "squashfs", "sysfs",
    "tmpfs", "tracefs",
})
NFS_TYPES = frozenset({"nfs", "nfs4"})


class MountEntry(NamedTuple):
    device: str
    mountpoint: str
    fstype: str
    options: List[str]


def _unescape(field: str) -> str:
    # /proc/mounts and fstab octal-escape spaces and tabs
    return field.replace("\\040", " ").replace("\\011", "\t")


def parse_mount_table(content: str) -> List[MountEntry]:
    """Entries from /proc/mounts or /etc/fstab (comments skipped)."""
    entries = []
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.split()
        if len(fields) < 4:
            continue
        entries.append(MountEntry(
            _unescape(fields[0]), _unescape(fields[1]), fields[2], fields[3].split(","),
        ))
    return entries


class MountDiagnostic(BaseDiagnostic):
    """Diagnose mount point issues and filesystem checks."""

    name = "mount"
    description = "Diagnose mount point issues and filesystem checks"
    permissions = frozenset({Permission.READ_PROC})
    is_quick = True

    MOUNTS_PATH = Path("/proc/mounts")
    FSTAB_PATH = Path("/etc/fstab")

    FINDING_LIMIT = 5
    MAX_OPTION_MOUNTPOINT_LEN = 50

    def is_available(self) -> bool:
        return self.MOUNTS_PATH.exists()

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        try:
            mounts = parse_mount_table(self.MOUNTS_PATH.read_text())
        except OSError as e:
            raise ExecutionError(self.name, f"cannot read {self.MOUNTS_PATH}: {e}", cause=e) from e

        report = self.new_report("Mount diagnostics")
        mountpoint_filter = config.get_str("mountpoint")
        check_nfs = config.get_bool("nfs", False)
        show_options = config.get_bool("options", False)

        if mountpoint_filter:
            mounts = [m for m in mounts if mountpoint_filter in m.mountpoint]
        report.add_metric(Metric("Mount count", len(mounts)))

        read_only = [m for m in mounts if "ro" in m.options and m.fstype not in PSEUDO_FILESYSTEMS]
        for mount in read_only[: self.FINDING_LIMIT]:
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="mount",
                message=f"Read-only: {mount.device} on {mount.mountpoint}",
            ))

        if check_nfs:
            for mount in [m for m in mounts if m.fstype in NFS_TYPES][: self.FINDING_LIMIT]:
                report.add_finding(Finding(
                    severity=Severity.INFO,
                    category="nfs",
                    message=f"{mount.mountpoint} {','.join(mount.options)}",
                    details="Check NFS server and network.",
                ))

        if show_options:
            for mount in mounts:
                if mount.mountpoint.startswith("/") and len(mount.mountpoint) <= self.MAX_OPTION_MOUNTPOINT_LEN:
                    report.add_metric(Metric(mount.mountpoint, ",".join(mount.options)))

        self._check_fstab(report, mounts, mountpoint_filter)

        if not report.findings and not show_options:
            report.summary = "Mounts look normal"
        report.add_recommendation(Recommendation(
            priority=3,
            action="Use 'findmnt' and 'mount' for the full mount tree",
            command="findmnt",
            explanation="Shows hierarchy and options.",
        ))
        return report

    def _check_fstab(self, report: DiagnosticReport, mounts: List[MountEntry], mountpoint_filter) -> None:
        try:
            content = read_file_optional(self.FSTAB_PATH)
        except OSError:
            return
        if content is None:
            return

        fstab = parse_mount_table(content)
        report.add_metric(Metric("fstab entries", len(fstab)))

        mounted = {m.mountpoint.rstrip("/") or "/" for m in mounts}
        for entry in fstab:
            if entry.fstype == "swap" or entry.mountpoint in ("none", "swap") or "noauto" in entry.options:
                continue
            if mountpoint_filter and mountpoint_filter not in entry.mountpoint:
                continue
            if (entry.mountpoint.rstrip("/") or "/") in mounted:
                continue
            report.add_finding(Finding(
                severity=Severity.WARNING,
                category="fstab",
                message=f"fstab entry {entry.mountpoint} ({entry.device}) is not mounted",
                details="The filesystem may have failed to mount at boot.",
            ))
            report.add_recommendation(Recommendation(
                priority=2,
                action=f"Try mounting {entry.mountpoint} and check the error",
                command=f"sudo mount {entry.mountpoint}",
                explanation="A failing fstab mount often points at a missing or renamed device.",
            ))
