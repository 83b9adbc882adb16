"""
Boot Diagnostics

Explains slow boots from systemd-analyze totals and the per-unit blame list.
"""

import re
from typing import List, Optional, Tuple

from whydiag.core.base import BaseDiagnostic, ModuleConfig
from whydiag.core.report import DiagnosticReport, Finding, Metric, Recommendation, Threshold
from whydiag.core.severity import Severity
from whydiag.utils.system import CommandError, command_exists, run_cmd

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(h|min|ms|us|s)\b")
_UNIT_SECONDS = {"h": 3600.0, "min": 60.0, "s": 1.0, "ms": 0.001, "us": 0.000001}


def parse_systemd_duration(text: str) -> Optional[float]:
    """
    Parse a systemd timespan such as "1min 2.345s" or "850ms" into seconds.

    Returns None if the text contains no recognizable duration.
    """
    parts = _DURATION_PART_RE.findall(text)
    if not parts:
        return None
    return sum(float(amount) * _UNIT_SECONDS[unit] for amount, unit in parts)


def parse_boot_total(output: str) -> Optional[float]:
    """Total boot time from ``systemd-analyze time`` ("... = 13.7s")."""
    for line in output.splitlines():
        if "=" in line and line.startswith("Startup finished"):
            return parse_systemd_duration(line.rsplit("=", 1)[1])
    return None


def parse_blame(output: str) -> List[Tuple[str, float]]:
    """(unit, seconds) pairs from ``systemd-analyze blame``, services only."""
    services = []
    for line in output.splitlines():
        tokens = line.split()
        if len(tokens) < 2 or not tokens[-1].endswith(".service"):
            continue
        seconds = parse_systemd_duration(" ".join(tokens[:-1]))
        if seconds is not None:
            services.append((tokens[-1], seconds))
    return services


class BootDiagnostic(BaseDiagnostic):
    """Explain slow boot using systemd-analyze."""

    name = "boot"
    description = "Explain slow boot times and identify slow services"
    is_quick = True

    WARN_TOTAL_SECONDS = 15.0
    CRIT_TOTAL_SECONDS = 30.0
    SLOW_SERVICE_SECONDS = 1.0
    WARN_SERVICE_SECONDS = 5.0

    def is_available(self) -> bool:
        return command_exists("systemd-analyze")

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        report = self.new_report("Boot performance analysis")

        try:
            total = parse_boot_total(run_cmd(["systemd-analyze", "time"]))
        except CommandError as e:
            total = None
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="boot",
                message="Boot timing not available",
                details=str(e),
            ))

        if total is not None:
            report.add_metric(Metric(
                "Total boot time", round(total, 2), "s",
                Threshold(self.WARN_TOTAL_SECONDS, self.CRIT_TOTAL_SECONDS),
            ))
            if total > self.CRIT_TOTAL_SECONDS:
                report.add_finding(Finding(
                    severity=Severity.WARNING,
                    category="boot",
                    message=f"Boot took {total:.1f}s (over {self.CRIT_TOTAL_SECONDS:.0f}s)",
                    details="Check the blame list for units that delay startup.",
                ))

        self._check_blame(report, config)

        if report.recommendations or total is None:
            return report
        report.add_recommendation(Recommendation(
            priority=4,
            action="Inspect the critical chain of the default target",
            command="systemd-analyze critical-chain",
            explanation="Shows which units the boot actually waited for.",
        ))
        return report

    def _check_blame(self, report: DiagnosticReport, config: ModuleConfig) -> None:
        try:
            services = parse_blame(run_cmd(["systemd-analyze", "blame"]))
        except CommandError:
            return

        slow = [s for s in services if s[1] >= self.SLOW_SERVICE_SECONDS]
        slow.sort(key=lambda s: s[1], reverse=True)
        for unit, seconds in slow[: config.top_n]:
            severity = Severity.WARNING if seconds > self.WARN_SERVICE_SECONDS else Severity.INFO
            report.add_finding(Finding(
                severity=severity,
                category="service",
                message=f"{unit} took {seconds:.2f}s",
                details=None if severity == Severity.INFO else "Consider disabling or delaying this unit.",
            ))

        if any(seconds > self.WARN_SERVICE_SECONDS for _, seconds in slow):
            unit = slow[0][0]
            report.add_recommendation(Recommendation(
                priority=2,
                action=f"Review {unit}, the slowest unit at boot",
                command=f"systemctl status {unit}",
                explanation="Services waiting on the network or hardware often stall boot.",
            ))
