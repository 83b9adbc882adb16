"""
Memory Diagnostics

Reads system-wide memory and swap usage with psutil and ranks processes by
resident memory.
"""

from pathlib import Path
from typing import List, Tuple

import psutil

from whydiag.core.base import BaseDiagnostic, ModuleConfig, Permission
from whydiag.core.errors import ExecutionError
from whydiag.core.report import DiagnosticReport, Finding, Metric, Recommendation, Threshold
from whydiag.core.severity import Severity
from whydiag.utils.format import format_bytes


class MemDiagnostic(BaseDiagnostic):
    """Explain memory consumption and identify top consumers."""

    name = "mem"
    description = "Explain memory consumption and identify top consumers"
    permissions = frozenset({Permission.READ_PROC})
    is_quick = True

    PROC_MEMINFO = Path("/proc/meminfo")

    WARN_PERCENT = 80.0
    CRIT_PERCENT = 95.0
    HIGH_USAGE_PERCENT = 90.0
    RECOMMEND_PERCENT = 85.0
    SWAP_WARN_PERCENT = 50.0
    PROCESS_MIN_RSS = 50 * 1024 * 1024

    def is_available(self) -> bool:
        return self.PROC_MEMINFO.exists()

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        check_swap = config.get_bool("swap", True)
        try:
            mem = psutil.virtual_memory()
            swap = psutil.swap_memory() if check_swap else None
        except OSError as e:
            raise ExecutionError(self.name, f"cannot read system memory: {e}", cause=e) from e

        report = self.new_report("Memory analysis")
        report.raw_data = {"virtual_memory": mem._asdict()}
        if swap is not None:
            report.raw_data["swap_memory"] = swap._asdict()

        usage_pct = mem.percent
        report.add_metric(Metric("Memory total", format_bytes(mem.total)))
        report.add_metric(Metric("Memory used", format_bytes(mem.used)))
        report.add_metric(Metric(
            "Memory usage", round(usage_pct, 2), "%",
            Threshold(self.WARN_PERCENT, self.CRIT_PERCENT),
        ))

        if usage_pct > self.HIGH_USAGE_PERCENT:
            report.add_finding(Finding(
                severity=Severity.WARNING,
                category="mem",
                message="Memory usage is very high; OOM risk if load increases",
                details=f"Used {format_bytes(mem.used)} of {format_bytes(mem.total)}, "
                        f"{format_bytes(mem.available)} available",
            ))

        if swap is not None:
            self._check_swap(report, swap)

        min_rss = 0 if config.verbose else self.PROCESS_MIN_RSS
        for pid, name, rss in self._top_processes(config.top_n):
            if rss < min_rss:
                continue
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="process",
                message=f"{name} (PID {pid}) uses {format_bytes(rss)}",
                details="RSS (resident set size)",
            ))

        if usage_pct > self.RECOMMEND_PERCENT:
            report.add_recommendation(Recommendation(
                priority=1,
                action="Identify and reduce memory-heavy processes or add RAM",
                command="ps aux --sort=-%mem | head -15",
                explanation="High memory usage can cause swapping and slowdowns.",
            ))
        return report

    def _check_swap(self, report: DiagnosticReport, swap) -> None:
        if swap.total <= 0:
            return

        report.add_metric(Metric("Swap used", format_bytes(swap.used)))
        if swap.percent > self.SWAP_WARN_PERCENT:
            report.add_finding(Finding(
                severity=Severity.WARNING,
                category="swap",
                message=f"High swap usage ({swap.percent:.0f}%); system may be under memory pressure",
                details="Consider adding RAM or reducing memory-hungry processes.",
            ))

    def _top_processes(self, limit: int) -> List[Tuple[int, str, int]]:
        processes = []
        for proc in psutil.process_iter(["pid", "name", "memory_info"]):
            info = proc.info
            mem = info.get("memory_info")
            if mem is None:
                continue
            processes.append((info["pid"], info.get("name") or f"[pid {info['pid']}]", mem.rss))
        processes.sort(key=lambda p: p[2], reverse=True)
        return processes[:limit]
