"""
Diagnostic Report Generator

Creates formatted documents from a set of diagnostic reports and the
errors of modules that did not produce one:
- Console (coloured text)
- JSON
- HTML (Jinja2)
- Markdown
"""

import io
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from whydiag.core.errors import DiagnosticError
from whydiag.core.report import DiagnosticReport
from whydiag.core.runner import ModuleOutcome
from whydiag.core.severity import Severity
from whydiag.output.terminal import write_reports

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
HTML_TEMPLATE = "report.html"

SEVERITY_EMOJI = {
    Severity.OK: '✅',
    Severity.INFO: 'ℹ️',
    Severity.WARNING: '⚠️',
    Severity.CRITICAL: '🔴',
}


class DiagnosticReporter:
    """
    Generates formatted reports from diagnostic results.

    Supports multiple output formats and can save to files. Reports are
    never modified.
    """

    def __init__(self, reports: Sequence[DiagnosticReport] = (),
                 errors: Sequence[DiagnosticError] = ()):
        """
        Initialize reporter with results.

        Args:
            reports: Successful module reports, in run order
            errors: Errors of modules that produced no report
        """
        self._reports = list(reports)
        self._errors = list(errors)

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[ModuleOutcome]) -> "DiagnosticReporter":
        return cls(
            reports=[o.report for o in outcomes if o.report is not None],
            errors=[o.error for o in outcomes if o.error is not None],
        )

    @property
    def reports(self) -> List[DiagnosticReport]:
        return list(self._reports)

    @property
    def errors(self) -> List[DiagnosticError]:
        return list(self._errors)

    def summary(self) -> Dict:
        """Counts per severity plus failures."""
        by_severity = {s.value: 0 for s in Severity}
        for report in self._reports:
            by_severity[report.overall_severity.value] += 1
        return {
            'modules': len(self._reports) + len(self._errors),
            'reports': len(self._reports),
            'errors': len(self._errors),
            'by_severity': by_severity,
            'worst_severity': Severity.worst(r.overall_severity for r in self._reports).value,
        }

    def _error_dicts(self) -> List[Dict[str, str]]:
        return [{'module': e.module, 'error': str(e)} for e in self._errors]

    def to_json(self, indent: int = 2) -> str:
        """
        Generate JSON document.

        Args:
            indent: JSON indentation level

        Returns:
            JSON string with summary, reports and errors
        """
        document = {
            'generated_at': datetime.now().isoformat(),
            'summary': self.summary(),
            'reports': [r.to_dict() for r in self._reports],
            'errors': self._error_dicts(),
        }
        return json.dumps(document, indent=indent, ensure_ascii=False, default=str)

    def to_terminal(self, use_color: bool = False) -> str:
        buffer = io.StringIO()
        write_reports(buffer, self._reports, use_color)
        for error in self._errors:
            buffer.write(f"ERROR {error}\n")
        return buffer.getvalue()

    def to_markdown(self) -> str:
        """
        Generate Markdown report.

        Returns:
            Markdown formatted string
        """
        lines = []
        summary = self.summary()

        # Header
        lines.append("# whydiag Diagnostics Report")
        lines.append("")
        lines.append(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        lines.append("")

        # Summary
        lines.append("## Summary")
        lines.append("")
        lines.append("| Module | Status | Summary |")
        lines.append("|--------|--------|---------|")
        for report in self._reports:
            severity = report.overall_severity
            lines.append(f"| {report.module} | {SEVERITY_EMOJI[severity]} {severity.label} | {report.summary} |")
        for error in self._errors:
            lines.append(f"| {error.module} | ERROR | {error} |")
        lines.append("")
        lines.append(f"> **Worst severity:** {Severity.parse(summary['worst_severity']).label}")
        lines.append("")

        for report in self._reports:
            lines.append(f"## {report.module}")
            lines.append("")
            if report.metrics:
                lines.append("| Metric | Value |")
                lines.append("|--------|-------|")
                for metric in report.metrics:
                    lines.append(f"| {metric.name} | {metric.display_value}{metric.unit or ''} |")
                lines.append("")

            if report.findings:
                lines.append("**Findings:**")
                lines.append("")
                for finding in report.findings:
                    lines.append(f"- {finding.severity.symbol} {finding.message}")
                    if finding.details:
                        lines.append(f"  - {finding.details}")
                lines.append("")

            recommendations = report.sorted_recommendations()
            if recommendations:
                lines.append("**Recommendations:**")
                lines.append("")
                for i, rec in enumerate(recommendations, 1):
                    lines.append(f"{i}. [{rec.priority_label}] {rec.action}")
                    if rec.command:
                        lines.append(f"   `{rec.command}`")
                lines.append("")

        if self._errors:
            lines.append("## Errors")
            lines.append("")
            for error in self._errors:
                lines.append(f"- **{error.module}:** {error}")
            lines.append("")

        return "\n".join(lines)

    def to_html(self, templates_dir: Optional[Path] = None) -> str:
        """
        Generate HTML report from the packaged Jinja2 template.

        Returns:
            HTML string
        """
        env = Environment(
            loader=FileSystemLoader(str(templates_dir or TEMPLATES_DIR)),
            autoescape=select_autoescape(['html', 'xml']),
        )
        template = env.get_template(HTML_TEMPLATE)
        return template.render(
            generated_at=datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            summary=self.summary(),
            reports=self._reports,
            errors=self._error_dicts(),
            emoji=SEVERITY_EMOJI,
        )

    def save(self, path: str, format: str = 'auto') -> str:
        """
        Save report to file.

        Args:
            path: Output file path
            format: 'json', 'html', 'md', 'txt', or 'auto' (detect from extension)

        Returns:
            Path to saved file
        """
        path = Path(path)

        # Auto-detect format from extension
        if format == 'auto':
            ext = path.suffix.lower()
            format_map = {'.json': 'json', '.html': 'html', '.htm': 'html',
                          '.md': 'md', '.markdown': 'md', '.txt': 'txt'}
            format = format_map.get(ext, 'json')

        if format == 'html':
            content = self.to_html()
        elif format in ('md', 'markdown'):
            content = self.to_markdown()
        elif format in ('txt', 'terminal'):
            content = self.to_terminal(use_color=False)
        else:
            content = self.to_json()

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.info(f"Report saved to {path}")

        return str(path)
