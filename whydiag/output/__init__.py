"""
Output Renderers

Terminal, JSON and multi-format document rendering for diagnostic reports.
"""

from whydiag.output.json_output import (
    report_to_json,
    reports_to_json,
    write_report_json,
    write_reports_json,
)
from whydiag.output.reporter import DiagnosticReporter
from whydiag.output.terminal import Colors, write_report, write_reports

__all__ = [
    'Colors',
    'DiagnosticReporter',
    'report_to_json',
    'reports_to_json',
    'write_report',
    'write_report_json',
    'write_reports',
    'write_reports_json',
]
