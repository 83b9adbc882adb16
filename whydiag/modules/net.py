"""
Network Diagnostics

Checks reachability and latency with ping, verifies DNS resolution, and
summarizes interface counters from /proc/net/dev.
"""

import ipaddress
import re
from pathlib import Path
from typing import List, NamedTuple

from whydiag.core.base import BaseDiagnostic, ModuleConfig
from whydiag.core.report import DiagnosticReport, Finding, Metric, Recommendation, Threshold
from whydiag.core.severity import Severity
from whydiag.utils.system import CommandError, run_cmd, run_process

_PING_TIME_RE = re.compile(r"time[=<]\s*([\d.]+)\s*ms")

DNS_FALLBACK_NAME = "google.com"


class InterfaceStats(NamedTuple):
    name: str
    rx_bytes: int
    rx_errors: int
    rx_dropped: int
    tx_bytes: int
    tx_errors: int
    tx_dropped: int


def parse_ping_times(output: str) -> List[float]:
    """Round-trip times in ms from ping output ("time=12.3 ms" lines)."""
    return [float(m.group(1)) for m in _PING_TIME_RE.finditer(output)]


def parse_net_dev(content: str) -> List[InterfaceStats]:
    """Interface counters from /proc/net/dev (two header lines skipped)."""
    interfaces = []
    for line in content.splitlines()[2:]:
        name, sep, counters = line.partition(":")
        if not sep:
            continue
        fields = counters.split()
        if len(fields) < 16:
            continue
        try:
            values = [int(f) for f in fields]
        except ValueError:
            continue
        interfaces.append(InterfaceStats(
            name.strip(), values[0], values[2], values[3], values[8], values[10], values[11],
        ))
    return interfaces


def is_ip_address(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False


class NetDiagnostic(BaseDiagnostic):
    """Diagnose network issues: connectivity, DNS, interfaces."""

    name = "net"
    description = "Diagnose network issues: connectivity, DNS, interfaces"
    is_quick = False

    NET_DEV_PATH = Path("/proc/net/dev")

    DEFAULT_HOST = "8.8.8.8"
    DEFAULT_COUNT = 3
    PING_DEADLINE_SECONDS = 2
    WARN_LATENCY_MS = 100.0
    CRIT_LATENCY_MS = 500.0
    HIGH_LATENCY_MS = 200.0

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        host = config.get_str("host", self.DEFAULT_HOST)
        count = max(config.get_int("count", self.DEFAULT_COUNT), 1)

        report = self.new_report("Network diagnostics")
        report.add_metric(Metric("Target host", host))

        self._check_ping(report, host, count)
        self._check_dns(report, DNS_FALLBACK_NAME if is_ip_address(host) else host)
        self._check_interfaces(report, config)

        if report.overall_severity == Severity.OK:
            report.add_recommendation(Recommendation(
                priority=3,
                action="For deeper diagnosis use: ip addr, ip route, nmcli, traceroute",
                command="ip addr show",
                explanation="Check interfaces and routing.",
            ))
        return report

    def _check_ping(self, report: DiagnosticReport, host: str, count: int) -> None:
        args = ["ping", "-c", str(count), "-W", str(self.PING_DEADLINE_SECONDS), host]
        try:
            process = run_process(args, timeout=count * self.PING_DEADLINE_SECONDS + 5)
        except CommandError as e:
            report.add_finding(Finding(
                severity=Severity.INFO,
                category="connectivity",
                message="Could not run ping",
                details=str(e),
            ))
            return

        times = parse_ping_times(process.stdout)
        if times:
            avg = sum(times) / len(times)
            report.add_metric(Metric(
                "Ping latency (avg)", round(avg, 2), "ms",
                Threshold(self.WARN_LATENCY_MS, self.CRIT_LATENCY_MS),
            ))
            if avg > self.HIGH_LATENCY_MS:
                report.add_finding(Finding(
                    severity=Severity.WARNING,
                    category="latency",
                    message=f"High latency to {host} ({avg:.0f} ms avg)",
                    details="Check WiFi, cable, or ISP.",
                ))
            lost = count - len(times)
            if lost > 0:
                report.add_finding(Finding(
                    severity=Severity.INFO,
                    category="connectivity",
                    message=f"{lost} of {count} pings to {host} were lost",
                ))
        elif process.returncode != 0:
            report.add_finding(Finding(
                severity=Severity.WARNING,
                category="connectivity",
                message=f"Ping to {host} failed; host may be unreachable",
                details="Check firewall, routing, and DNS.",
            ))
            report.add_recommendation(Recommendation(
                priority=1,
                action="Check the default route and link state",
                command="ip route show default",
                explanation="No replies usually means no route or a link that is down.",
            ))

    def _check_dns(self, report: DiagnosticReport, hostname: str) -> None:
        for args in (["getent", "hosts", hostname], ["host", hostname]):
            try:
                output = run_cmd(args)
            except CommandError:
                continue
            if not output.strip():
                continue
            report.add_finding(Finding(
                severity=Severity.OK,
                category="dns",
                message=f"DNS resolution for {hostname} OK",
                details=output.strip().splitlines()[0],
            ))
            return
        report.add_finding(Finding(
            severity=Severity.INFO,
            category="dns",
            message=f"Could not verify DNS for {hostname} (getent/host not available or failed)",
        ))

    def _check_interfaces(self, report: DiagnosticReport, config: ModuleConfig) -> None:
        try:
            interfaces = parse_net_dev(self.NET_DEV_PATH.read_text())
        except OSError:
            return

        for iface in interfaces:
            if iface.name == "lo":
                continue
            if iface.rx_bytes == 0 and iface.tx_bytes == 0 and not config.verbose:
                continue
            report.add_metric(Metric(f"{iface.name} rx", iface.rx_bytes, "bytes"))
            report.add_metric(Metric(f"{iface.name} tx", iface.tx_bytes, "bytes"))
            errors = iface.rx_errors + iface.tx_errors
            dropped = iface.rx_dropped + iface.tx_dropped
            if errors or dropped:
                report.add_finding(Finding(
                    severity=Severity.INFO,
                    category="interface",
                    message=f"{iface.name}: {errors} errors, {dropped} dropped packets",
                    details="Rising error counters point at cabling, driver or duplex problems.",
                ))
