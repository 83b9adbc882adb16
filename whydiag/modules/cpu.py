"""
CPU Diagnostics

Samples overall and per-core utilization plus per-process usage with psutil
and explains what is keeping the CPU busy.
"""

import logging
from typing import List, NamedTuple

import psutil

from whydiag.core.base import BaseDiagnostic, ModuleConfig, Permission
from whydiag.core.report import DiagnosticReport, Finding, Metric, Recommendation, Threshold
from whydiag.core.severity import Severity
from whydiag.utils.format import format_bytes

logger = logging.getLogger(__name__)


class ProcessUsage(NamedTuple):
    pid: int
    name: str
    user: str
    cpu_percent: float
    rss: int


class CpuDiagnostic(BaseDiagnostic):
    """Explain high CPU usage and identify top consumers."""

    name = "cpu"
    description = "Explain high CPU usage and identify top consumers"
    permissions = frozenset({Permission.READ_PROC})
    is_quick = True

    SAMPLE_SECONDS = 0.2
    WARN_PERCENT = 70.0
    CRIT_PERCENT = 90.0
    HIGH_PERCENT = 80.0
    MODERATE_PERCENT = 50.0
    PROCESS_WARN_PERCENT = 50.0
    PROCESS_MIN_PERCENT = 0.5

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        sample = max(config.get_float("sample", self.SAMPLE_SECONDS), 0.05)

        processes = self._prime_processes()
        # Blocks for the sample window; process counters are read after it.
        per_cpu = psutil.cpu_percent(interval=sample, percpu=True)
        usage = self._sample_processes(processes)

        total = sum(per_cpu) / len(per_cpu) if per_cpu else 0.0
        load = psutil.getloadavg()
        cores = psutil.cpu_count() or len(per_cpu) or 1

        if total > self.HIGH_PERCENT:
            summary = "High CPU utilization detected"
        elif total > self.MODERATE_PERCENT:
            summary = "Moderate CPU usage"
        else:
            summary = "CPU usage within normal range"
        report = self.new_report(summary)
        report.raw_data = {"per_cpu_percent": list(per_cpu), "load_average": list(load)}

        report.add_metric(Metric(
            "CPU usage", round(total, 2), "%",
            Threshold(self.WARN_PERCENT, self.CRIT_PERCENT),
        ))
        report.add_metric(Metric("Load average (1m)", round(load[0], 2)))
        report.add_metric(Metric("Load average (5m)", round(load[1], 2)))
        report.add_metric(Metric("Load average (15m)", round(load[2], 2)))
        report.add_metric(Metric("Logical CPUs", cores))

        if total > self.HIGH_PERCENT:
            report.add_finding(Finding(
                severity=Severity.WARNING,
                category="cpu",
                message=f"CPU busy at {total:.1f}%",
                details="Sustained high utilization slows every other workload.",
            ))
        if load[0] > cores:
            report.add_finding(Finding(
                severity=Severity.WARNING,
                category="load",
                message=f"1-minute load {load[0]:.2f} exceeds {cores} logical CPUs",
                details="Runnable tasks are queueing for CPU time.",
            ))

        min_percent = 0.0 if config.verbose else self.PROCESS_MIN_PERCENT
        top = [u for u in usage if u.cpu_percent >= min_percent][: config.top_n]
        for proc in top:
            severity = Severity.WARNING if proc.cpu_percent > self.PROCESS_WARN_PERCENT else Severity.INFO
            report.add_finding(Finding(
                severity=severity,
                category="process",
                message=f"{proc.name} (PID {proc.pid}) using {proc.cpu_percent:.1f}% CPU",
                details=f"User: {proc.user}, RSS: {format_bytes(proc.rss)}",
            ))

        if top and top[0].cpu_percent > self.PROCESS_WARN_PERCENT:
            report.add_recommendation(Recommendation(
                priority=2,
                action=f"Investigate {top[0].name} (PID {top[0].pid})",
                command=f"top -p {top[0].pid}",
                explanation="The top consumer is using more than half a core.",
            ))
        if total > self.HIGH_PERCENT:
            report.add_recommendation(Recommendation(
                priority=3,
                action="Watch per-process CPU usage over time",
                command="pidstat 1 5",
                explanation="A single sample can miss short-lived bursts.",
            ))
        return report

    def _prime_processes(self) -> List[psutil.Process]:
        processes = []
        for proc in psutil.process_iter(["pid", "name", "username"]):
            try:
                proc.cpu_percent(None)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
            processes.append(proc)
        return processes

    def _sample_processes(self, processes: List[psutil.Process]) -> List[ProcessUsage]:
        usage = []
        for proc in processes:
            try:
                percent = proc.cpu_percent(None)
                rss = proc.memory_info().rss
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
            info = proc.info
            usage.append(ProcessUsage(
                pid=info["pid"],
                name=info.get("name") or f"[pid {info['pid']}]",
                user=info.get("username") or "?",
                cpu_percent=percent,
                rss=rss,
            ))
        usage.sort(key=lambda u: u.cpu_percent, reverse=True)
        logger.debug(f"Sampled {len(usage)} processes")
        return usage
