"""
Terminal Renderer

Human-readable, optionally coloured rendering of diagnostic reports.
"""

from typing import Iterable, TextIO

from whydiag.core.report import DiagnosticReport, Metric
from whydiag.core.severity import Severity

RULE_WIDTH = 60


class Colors:
    """ANSI color codes."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    WHITE = '\033[97m'
    GRAY = '\033[90m'


SEVERITY_ICONS = {
    Severity.OK: "✅",
    Severity.INFO: "ℹ️ ",
    Severity.WARNING: "⚠️ ",
    Severity.CRITICAL: "🔴",
}

SEVERITY_COLORS = {
    Severity.OK: Colors.GREEN,
    Severity.INFO: Colors.BLUE,
    Severity.WARNING: Colors.YELLOW,
    Severity.CRITICAL: Colors.RED,
}


def _paint(text: str, color: str, use_color: bool) -> str:
    return f"{color}{text}{Colors.RESET}" if use_color else text


def severity_badge(severity: Severity, use_color: bool = True) -> str:
    """Icon plus fixed label, e.g. "🔴 CRITICAL"."""
    badge = f"{SEVERITY_ICONS[severity]} {severity.label}"
    return _paint(badge, SEVERITY_COLORS[severity], use_color)


def format_metric(metric: Metric, use_color: bool = True) -> str:
    """'  name: valueunit', with the value coloured by its threshold."""
    value = f"{metric.display_value}{metric.unit or ''}"
    if use_color:
        if metric.threshold is not None:
            severity = metric.threshold.evaluate(metric.value)
            color = Colors.WHITE if severity == Severity.OK else SEVERITY_COLORS[severity]
        else:
            color = Colors.WHITE
        value = _paint(value, color, use_color)
    return f"  {metric.name}: {value}"


def write_report(stream: TextIO, report: DiagnosticReport, use_color: bool = True) -> None:
    """
    Render one report.

    Layout: title and rule, overall status, metrics, findings (with
    details), then recommendations ordered by priority.
    """
    c = Colors
    title = f"{report.module.upper()} DIAGNOSTICS"
    stream.write("\n" + _paint(title, c.BOLD + c.CYAN, use_color) + "\n")
    stream.write("═" * RULE_WIDTH + "\n")
    stream.write(f"\nOverall Status: {severity_badge(report.overall_severity, use_color)} - {report.summary}\n")

    if report.metrics:
        stream.write("\n")
        for metric in report.metrics:
            stream.write(format_metric(metric, use_color) + "\n")

    if report.findings:
        stream.write("\n💡 WHY is this happening?\n\n")
        for finding in report.findings:
            stream.write(f"   ┌─ Finding: {finding.message}\n")
            if finding.details:
                stream.write(_paint(f"   │  → {finding.details}", c.GRAY, use_color) + "\n")
            stream.write(f"   └─ {severity_badge(finding.severity, use_color)}\n")

    recommendations = report.sorted_recommendations()
    if recommendations:
        stream.write("\n📋 RECOMMENDATIONS:\n\n")
        for i, rec in enumerate(recommendations, 1):
            line = f"   {i}. [{rec.priority_label}] {rec.action}"
            stream.write(_paint(line, c.YELLOW, use_color) + "\n")
            if rec.command:
                stream.write("      $ " + _paint(rec.command, c.GRAY, use_color) + "\n")
            stream.write(f"      → {rec.explanation}\n")

    stream.write("\n")


def write_reports(stream: TextIO, reports: Iterable[DiagnosticReport], use_color: bool = True) -> None:
    """Render several reports one after another."""
    for report in reports:
        write_report(stream, report, use_color)
