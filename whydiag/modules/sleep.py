"""
Sleep Diagnostics

Lists what is inhibiting suspend and reports the kernel's sleep support and
wakeup counter.
"""

import re
from pathlib import Path
from typing import List

from whydiag.core.base import BaseDiagnostic, ModuleConfig
from whydiag.core.report import DiagnosticReport, Finding, Metric, Recommendation
from whydiag.core.severity import Severity
from whydiag.utils.files import read_first_line
from whydiag.utils.parse import parse_int
from whydiag.utils.system import CommandError, command_exists, run_cmd

_INHIBIT_FOOTER_RE = re.compile(r"^\d+ inhibitors? listed\.?$")


def parse_inhibitors(output: str) -> List[str]:
    """Inhibitor rows from ``systemd-inhibit --list``, header and footer removed."""
    rows = []
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("WHO") or _INHIBIT_FOOTER_RE.match(line):
            continue
        rows.append(line)
    return rows


class SleepDiagnostic(BaseDiagnostic):
    """Diagnose sleep/suspend issues and inhibitors."""

    name = "sleep"
    description = "Diagnose sleep/suspend issues and inhibitors"
    is_quick = True

    POWER_PATH = Path("/sys/power")

    INHIBITOR_LIMIT = 5
    MANY_INHIBITORS = 3

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        report = self.new_report("Sleep/suspend diagnostics")

        if config.get_bool("inhibitors", True) and command_exists("systemd-inhibit"):
            self._check_inhibitors(report)

        self._check_power_state(report)

        if not report.findings and not report.metrics:
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="sleep",
                message="No inhibitor or wakeup data available (systemd-inhibit or /sys/power)",
            ))

        report.add_recommendation(Recommendation(
            priority=3,
            action="Check the journal for suspend/resume events",
            command="journalctl -b -u sleep.target",
            explanation="Shows last sleep/resume events.",
        ))
        return report

    def _check_inhibitors(self, report: DiagnosticReport) -> None:
        try:
            inhibitors = parse_inhibitors(run_cmd(["systemd-inhibit", "--list", "--no-pager"]))
        except CommandError:
            return

        if not inhibitors:
            report.add_finding(Finding(
                severity=Severity.OK,
                category="sleep",
                message="No sleep inhibitors active",
            ))
            return

        report.add_metric(Metric("Active inhibitors", len(inhibitors)))
        for line in inhibitors[: self.INHIBITOR_LIMIT]:
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="inhibit",
                message=f"Inhibitor: {line}",
            ))
        if len(inhibitors) > self.MANY_INHIBITORS:
            report.add_recommendation(Recommendation(
                priority=2,
                action="Review what is blocking sleep",
                command="systemd-inhibit --list",
                explanation="Apps (e.g. video players, SSH sessions) can prevent suspend.",
            ))

    def _check_power_state(self, report: DiagnosticReport) -> None:
        states = read_first_line(self.POWER_PATH / "state")
        if states is not None:
            supported = states.split()
            report.add_metric(Metric("Supported sleep states", supported))
            if "mem" not in supported:
                report.add_finding(Finding(
                    severity=Severity.INFO,
                    category="sleep",
                    message="Suspend-to-RAM is not offered by the kernel",
                    details="Firmware settings or a missing driver can disable S3/s2idle.",
                ))

        wakeups = parse_int(read_first_line(self.POWER_PATH / "wakeup_count"))
        if wakeups is not None:
            report.add_metric(Metric("Wakeup count", wakeups))
