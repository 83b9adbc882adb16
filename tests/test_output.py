"""
Renderer and Reporter Tests

Run with:
    pytest tests/test_output.py -v
"""

import io
import json

import pytest

from whydiag.core.errors import ExecutionError, ModuleUnavailableError
from whydiag.core.report import DiagnosticReport, Finding
from whydiag.core.runner import ModuleOutcome
from whydiag.core.severity import Severity
from whydiag.output import (
    Colors,
    DiagnosticReporter,
    report_to_json,
    reports_to_json,
    write_report,
)


def render(report, use_color=False):
    buffer = io.StringIO()
    write_report(buffer, report, use_color)
    return buffer.getvalue()


@pytest.fixture
def errors():
    return [ExecutionError("broken", "boom"), ModuleUnavailableError("gone")]


# =============================================================================
# Terminal
# =============================================================================

class TestTerminal:

    def test_layout(self, sample_report):
        text = render(sample_report)
        lines = text.splitlines()
        assert lines[1] == "SAMPLE DIAGNOSTICS"
        assert lines[2] == "═" * 60
        assert "WARNING - Sample summary" in text
        assert "  Usage: 91.50%" in lines
        assert "  States: mem, disk" in lines
        assert "   ┌─ Finding: warning message" in lines
        assert "   │  → some details" in lines

    def test_recommendations_in_priority_order(self, sample_report):
        text = render(sample_report)
        assert text.index("1. [HIGH] First action") < text.index("2. [MEDIUM] Later action")
        assert "      $ do-it --now" in text

    def test_no_escape_codes_without_color(self, sample_report):
        assert "\033[" not in render(sample_report)

    def test_metric_colored_by_threshold(self, sample_report):
        text = render(sample_report, use_color=True)
        assert f"{Colors.YELLOW}91.50%{Colors.RESET}" in text
        assert f"{Colors.WHITE}mem, disk{Colors.RESET}" in text

    def test_empty_report(self):
        report = DiagnosticReport(module="quiet", summary="Nothing to see").finalize()
        text = render(report)
        assert "OK - Nothing to see" in text
        assert "WHY" not in text
        assert "RECOMMENDATIONS" not in text


# =============================================================================
# JSON
# =============================================================================

class TestJson:

    def test_single_report(self, sample_report):
        data = json.loads(report_to_json(sample_report))
        assert data["module"] == "sample"
        assert data["overall_severity"] == "Warning"

    def test_list_keeps_order(self, sample_report):
        other = DiagnosticReport(module="other", summary="x").finalize()
        data = json.loads(reports_to_json([other, sample_report]))
        assert [d["module"] for d in data] == ["other", "sample"]

    def test_non_ascii_kept(self):
        report = DiagnosticReport(module="temp", summary="42°C").finalize()
        assert "42°C" in report_to_json(report)


# =============================================================================
# DiagnosticReporter
# =============================================================================

class TestReporter:

    def test_summary(self, sample_report, errors):
        summary = DiagnosticReporter([sample_report], errors).summary()
        assert summary["modules"] == 3
        assert summary["reports"] == 1
        assert summary["errors"] == 2
        assert summary["by_severity"] == {"Ok": 0, "Info": 0, "Warning": 1, "Critical": 0}
        assert summary["worst_severity"] == "Warning"

    def test_from_outcomes(self, sample_report, errors):
        outcomes = [
            ModuleOutcome("sample", report=sample_report),
            ModuleOutcome("broken", error=errors[0]),
        ]
        reporter = DiagnosticReporter.from_outcomes(outcomes)
        assert reporter.reports == [sample_report]
        assert reporter.errors == [errors[0]]

    def test_to_json_document(self, sample_report, errors):
        document = json.loads(DiagnosticReporter([sample_report], errors).to_json())
        assert list(document) == ["generated_at", "summary", "reports", "errors"]
        assert document["reports"][0]["module"] == "sample"
        assert document["errors"][1] == {"module": "gone", "error": "Module gone is not available on this system"}

    def test_markdown(self, sample_report, errors):
        md = DiagnosticReporter([sample_report], errors).to_markdown()
        assert md.startswith("# whydiag Diagnostics Report")
        assert "| sample | ⚠️ WARNING | Sample summary |" in md
        assert "| broken | ERROR | Module broken failed: boom |" in md
        assert "| Usage | 91.50% |" in md
        assert "- [WARNING] warning message" in md
        assert md.index("1. [HIGH] First action") < md.index("2. [MEDIUM] Later action")
        assert "`do-it --now`" in md
        assert "> **Worst severity:** WARNING" in md

    def test_html(self, sample_report, errors):
        html = DiagnosticReporter([sample_report], errors).to_html()
        assert "<h3>sample</h3>" in html
        assert 'class="module-card warning"' in html
        assert "<code>do-it --now</code>" in html
        assert "Module broken failed: boom" in html

    def test_html_escapes_content(self):
        report = DiagnosticReport(module="x", summary="s")
        report.add_finding(Finding(Severity.INFO, "c", "<script>alert(1)</script>"))
        html = DiagnosticReporter([report.finalize()]).to_html()
        assert "<script>alert" not in html
        assert "&lt;script&gt;" in html

    def test_terminal_lists_errors(self, sample_report, errors):
        text = DiagnosticReporter([sample_report], errors).to_terminal()
        assert "SAMPLE DIAGNOSTICS" in text
        assert "ERROR Module gone is not available on this system" in text
        assert "\033[" not in text

    @pytest.mark.parametrize("filename,marker", [
        ("report.md", "# whydiag Diagnostics Report"),
        ("report.html", "<!DOCTYPE html>"),
        ("report.txt", "SAMPLE DIAGNOSTICS"),
        ("report.json", '"generated_at"'),
        ("report.out", '"generated_at"'),
    ])
    def test_save_detects_format(self, tmp_path, sample_report, filename, marker):
        path = DiagnosticReporter([sample_report]).save(str(tmp_path / "nested" / filename))
        with open(path, encoding="utf-8") as f:
            assert marker in f.read()

    def test_save_explicit_format(self, tmp_path, sample_report):
        path = DiagnosticReporter([sample_report]).save(str(tmp_path / "report.json"), format="md")
        with open(path, encoding="utf-8") as f:
            assert f.read().startswith("# whydiag")

    def test_reports_not_modified(self, sample_report):
        before = sample_report.to_dict()
        reporter = DiagnosticReporter([sample_report])
        reporter.to_markdown()
        reporter.to_html()
        assert sample_report.to_dict() == before
