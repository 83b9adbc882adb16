"""
Temperature Diagnostics

Collects readings from thermal zones and hwmon sensors and flags anything
running hot enough to throttle.
"""

from typing import List, Tuple

from whydiag.core.base import BaseDiagnostic, ModuleConfig, Permission
from whydiag.core.report import DiagnosticReport, Finding, Metric, Recommendation, Threshold
from whydiag.core.severity import Severity
from whydiag.utils.sensors import HWMON_PATH, THERMAL_PATH, read_hwmon_inputs, read_thermal_zones


class TempDiagnostic(BaseDiagnostic):
    """Analyze temperatures and thermal throttling."""

    name = "temp"
    description = "Analyze temperatures and thermal throttling"
    permissions = frozenset({Permission.READ_SYS})
    is_quick = True

    THERMAL_PATH = THERMAL_PATH
    HWMON_PATH = HWMON_PATH

    WARN_CELSIUS = 80
    CRIT_CELSIUS = 90

    def read_temperatures(self) -> List[Tuple[str, int]]:
        """(sensor, whole degrees C) from thermal zones then hwmon chips."""
        readings = read_thermal_zones(self.THERMAL_PATH) + read_hwmon_inputs("temp", self.HWMON_PATH)
        return [(label, millideg // 1000) for label, millideg in readings]

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        report = self.new_report("Temperature analysis")
        only_critical = config.get_bool("critical", False)

        temps = self.read_temperatures()
        if not temps:
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="temp",
                message="No temperature sensors found (/sys/class/thermal, /sys/class/hwmon)",
            ))
            return report

        for label, celsius in temps:
            if only_critical and celsius < self.CRIT_CELSIUS:
                continue
            report.add_metric(Metric(
                label, celsius, "°C", Threshold(self.WARN_CELSIUS, self.CRIT_CELSIUS),
            ))
            if celsius >= self.CRIT_CELSIUS:
                report.add_finding(Finding(
                    severity=Severity.CRITICAL,
                    category="temp",
                    message=f"{label} at {celsius}°C - thermal throttling risk",
                    details="Improve cooling or reduce load.",
                ))
            elif celsius >= self.WARN_CELSIUS:
                report.add_finding(Finding(
                    severity=Severity.WARNING,
                    category="temp",
                    message=f"{label} at {celsius}°C - high temperature",
                ))

        if report.overall_severity >= Severity.WARNING:
            report.add_recommendation(Recommendation(
                priority=1,
                action="Improve cooling: clean fans, check thermal paste, reduce load",
                command="sensors",
                explanation="Use 'sensors' (lm-sensors) for more detailed readings.",
            ))
        if not report.findings:
            report.summary = "Temperatures within normal range"
        return report
