"""JSON rendering of diagnostic reports."""

import json
from typing import Iterable, TextIO

from whydiag.core.report import DiagnosticReport


def report_to_json(report: DiagnosticReport, indent: int = 2) -> str:
    return json.dumps(report.to_dict(), indent=indent, ensure_ascii=False, default=str)


def reports_to_json(reports: Iterable[DiagnosticReport], indent: int = 2) -> str:
    """A JSON array of report projections, in the order given."""
    return json.dumps([r.to_dict() for r in reports], indent=indent, ensure_ascii=False, default=str)


def write_report_json(stream: TextIO, report: DiagnosticReport) -> None:
    stream.write(report_to_json(report) + "\n")


def write_reports_json(stream: TextIO, reports: Iterable[DiagnosticReport]) -> None:
    stream.write(reports_to_json(reports) + "\n")
