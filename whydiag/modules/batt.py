"""
Battery Diagnostics

Reads /sys/class/power_supply for charge level, status, wear and (when
detailed) the instantaneous power draw.
"""

from pathlib import Path
from typing import Optional

from whydiag.core.base import BaseDiagnostic, ModuleConfig, Permission
from whydiag.core.report import DiagnosticReport, Finding, Metric, Recommendation, Threshold
from whydiag.core.severity import Severity
from whydiag.utils.files import list_dir, read_first_line
from whydiag.utils.parse import parse_int


class BattDiagnostic(BaseDiagnostic):
    """Explain battery drain and charge state."""

    name = "batt"
    description = "Explain battery drain and power-hungry processes"
    permissions = frozenset({Permission.READ_SYS})
    is_quick = True

    POWER_SUPPLY_PATH = Path("/sys/class/power_supply")

    WARN_CAPACITY = 20
    CRIT_CAPACITY = 10
    WORN_HEALTH_PERCENT = 60

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        report = self.new_report("Battery diagnostics")
        detailed = config.get_bool("detailed", False)

        if not self.POWER_SUPPLY_PATH.exists():
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="batt",
                message="No power_supply class found (desktop or no battery)",
            ))
            return report

        batteries = [
            entry for entry in list_dir(self.POWER_SUPPLY_PATH)
            if "battery" in (read_first_line(entry / "type") or "").lower()
        ]
        if not batteries:
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="batt",
                message="No battery device found in /sys/class/power_supply",
                details="This is normal on desktops or when the battery is not exposed.",
            ))
            return report

        for battery in batteries:
            self._check_battery(report, battery, detailed)

        if not report.findings:
            report.summary = "Battery status OK"
        report.add_recommendation(Recommendation(
            priority=3,
            action="Use 'upower -i' or 'tlp-stat' for detailed power info",
            command=f"upower -i /org/freedesktop/UPower/devices/battery_{batteries[0].name}",
            explanation="upower provides charge cycles and time to empty.",
        ))
        return report

    def _check_battery(self, report: DiagnosticReport, battery: Path, detailed: bool) -> None:
        name = battery.name

        status = read_first_line(battery / "status")
        if status:
            report.add_metric(Metric(f"{name} status", status))

        capacity = self._attr_int(battery, "capacity")
        if capacity is not None:
            report.add_metric(Metric(
                f"{name} capacity", capacity, "%",
                Threshold(self.WARN_CAPACITY, self.CRIT_CAPACITY),
            ))
            if capacity < self.CRIT_CAPACITY:
                report.add_finding(Finding(
                    severity=Severity.WARNING,
                    category="batt",
                    message=f"Battery at {capacity}% - very low",
                    details="Plug in or suspend soon.",
                ))

        full = self._attr_int(battery, "energy_full")
        design = self._attr_int(battery, "energy_full_design")
        if full and design:
            health = full / design * 100
            report.add_metric(Metric(f"{name} health", round(health, 1), "%"))
            if health < self.WORN_HEALTH_PERCENT:
                report.add_finding(Finding(
                    severity=Severity.INFO,
                    category="batt",
                    message=f"{name} holds {health:.0f}% of its design capacity",
                    details="A worn battery drains noticeably faster.",
                ))

        if not detailed:
            return
        energy_now = self._attr_int(battery, "energy_now")
        power_now = self._attr_int(battery, "power_now")
        if energy_now is not None:
            report.add_metric(Metric(f"{name} energy_now", energy_now, "µWh"))
        if power_now is not None:
            report.add_metric(Metric(f"{name} power_now", power_now, "µW"))
        if energy_now and power_now and status == "Discharging":
            report.add_metric(Metric(f"{name} time to empty", round(energy_now / power_now, 2), "h"))

    @staticmethod
    def _attr_int(battery: Path, attr: str) -> Optional[int]:
        return parse_int(read_first_line(battery / attr))
