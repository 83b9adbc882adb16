"""
Fan Diagnostics

Reports fan speeds from hwmon and, given a temperature threshold, relates
fan activity to the hottest sensor on the machine.
"""

from whydiag.core.base import BaseDiagnostic, ModuleConfig, Permission
from whydiag.core.report import DiagnosticReport, Finding, Metric
from whydiag.core.severity import Severity
from whydiag.utils.sensors import HWMON_PATH, THERMAL_PATH, read_hwmon_inputs, read_thermal_zones


class FanDiagnostic(BaseDiagnostic):
    """Explain fan activity and correlate with temperature."""

    name = "fan"
    description = "Explain fan activity and correlate with temperature/load"
    permissions = frozenset({Permission.READ_SYS})
    is_quick = True

    HWMON_PATH = HWMON_PATH
    THERMAL_PATH = THERMAL_PATH

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        report = self.new_report("Fan diagnostics")
        threshold = config.get_float("threshold")

        fans = read_hwmon_inputs("fan", self.HWMON_PATH)
        if not fans:
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="fan",
                message="No fan sensors found under /sys/class/hwmon",
                details="Some laptops expose fans via ACPI or other interfaces.",
            ))
            return report

        for label, rpm in fans:
            report.add_metric(Metric(label, rpm, "RPM"))

        if config.verbose:
            for label, rpm in fans:
                if rpm == 0:
                    report.add_finding(Finding(
                        severity=Severity.INFO,
                        category="fan",
                        message=f"{label} reports 0 RPM (stopped or not connected)",
                    ))

        if threshold is not None:
            self._correlate_with_temperature(report, fans, threshold)

        if not report.findings:
            report.summary = "Fan speeds within normal range"
        return report

    def _correlate_with_temperature(self, report: DiagnosticReport, fans, threshold: float) -> None:
        temps = read_thermal_zones(self.THERMAL_PATH) + read_hwmon_inputs("temp", self.HWMON_PATH)
        if not temps:
            return
        sensor, millideg = max(temps, key=lambda t: t[1])
        hottest = millideg / 1000
        report.add_metric(Metric("Hottest sensor", round(hottest, 1), "°C"))
        if hottest < threshold:
            return
        for label, rpm in fans:
            if rpm <= 0:
                continue
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="fan",
                message=f"{label} running at {rpm} RPM while {sensor} is {hottest:.0f}°C "
                        f"(threshold {threshold:g}°C)",
                details="High fan speed usually indicates thermal load.",
            ))
