"""
USB Diagnostics

Enumerates USB devices via lsusb (or sysfs when lsusb is missing) and
optionally scans the kernel log for USB errors and resets.
"""

from pathlib import Path
from typing import List

from whydiag.core.base import BaseDiagnostic, ModuleConfig, Permission
from whydiag.core.report import DiagnosticReport, Finding, Metric, Recommendation
from whydiag.core.severity import Severity
from whydiag.utils.files import list_dir
from whydiag.utils.system import CommandError, command_exists, run_cmd

_ERROR_WORDS = ("error", "reset", "fail")


def usb_error_lines(dmesg_output: str, limit: int) -> List[str]:
    """Kernel log lines mentioning USB together with an error, reset or failure."""
    lines = []
    for line in dmesg_output.splitlines():
        lower = line.lower()
        if "usb" in lower and any(word in lower for word in _ERROR_WORDS):
            lines.append(line.strip())
            if len(lines) >= limit:
                break
    return lines


class UsbDiagnostic(BaseDiagnostic):
    """Diagnose USB device problems and enumeration."""

    name = "usb"
    description = "Diagnose USB device problems and enumeration"
    permissions = frozenset({Permission.READ_SYS})
    is_quick = True

    USB_DEVICES_PATH = Path("/sys/bus/usb/devices")

    DEVICE_LIMIT = 15
    DMESG_LIMIT = 10

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        report = self.new_report("USB diagnostics")
        device_filter = config.get_str("device")

        if command_exists("lsusb"):
            self._check_lsusb(report, device_filter)
        elif self.USB_DEVICES_PATH.exists():
            # Device entries start with the bus number; interfaces contain ':'
            devices = [e for e in list_dir(self.USB_DEVICES_PATH)
                       if e.name[:1].isdigit() and ":" not in e.name]
            report.add_metric(Metric("USB devices (sysfs)", len(devices)))

        if config.get_bool("dmesg", False):
            self._check_dmesg(report)

        if not report.findings and not report.metrics:
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="usb",
                message="No USB devices or lsusb/sysfs data available",
            ))

        report.add_recommendation(Recommendation(
            priority=3,
            action="Use 'lsusb -t' for a tree view and 'dmesg | grep -i usb' for kernel messages",
            command="lsusb -t",
            explanation="Helps identify enumeration or power issues.",
        ))
        return report

    def _check_lsusb(self, report: DiagnosticReport, device_filter) -> None:
        try:
            output = run_cmd(["lsusb"])
        except CommandError:
            return
        lines = [line.strip() for line in output.splitlines() if line.strip()]
        report.add_metric(Metric("USB devices (lsusb)", len(lines)))
        if device_filter:
            lines = [line for line in lines if device_filter.lower() in line.lower()]
        for line in lines[: self.DEVICE_LIMIT]:
            report.add_finding(Finding(severity=Severity.INFO, category="usb", message=line))

    def _check_dmesg(self, report: DiagnosticReport) -> None:
        if not command_exists("dmesg"):
            return
        try:
            output = run_cmd(["dmesg", "-T"])
        except CommandError as e:
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="dmesg",
                message="Kernel log not readable",
                details=f"{e} (dmesg may be restricted to root)",
            ))
            return
        for line in usb_error_lines(output, self.DMESG_LIMIT):
            report.add_finding(Finding(severity=Severity.WARNING, category="dmesg", message=line))
