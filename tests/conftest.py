"""
Pytest Configuration for whydiag Tests
======================================

Shared fixtures: stub diagnostic modules for runner/registry tests and a
helper for building fake /proc and /sys trees under tmp_path.
"""

from pathlib import Path

import pytest

from whydiag.core.base import BaseDiagnostic, ModuleConfig
from whydiag.core.report import DiagnosticReport, Finding
from whydiag.core.severity import Severity


# =============================================================================
# Stub modules
# =============================================================================

class StubDiagnostic(BaseDiagnostic):
    """Configurable module double that counts how often it runs."""

    def __init__(self, name="stub", severity=Severity.OK, available=True, error=None, is_quick=True):
        self.name = name
        self.description = f"Stub module {name}"
        self.is_quick = is_quick
        self._severity = severity
        self._available = available
        self._error = error
        self.available_calls = 0
        self.check_calls = 0
        self.configs = []

    def is_available(self) -> bool:
        self.available_calls += 1
        return self._available

    def check(self, config: ModuleConfig) -> DiagnosticReport:
        self.check_calls += 1
        self.configs.append(config)
        if self._error is not None:
            raise self._error
        report = self.new_report(f"{self.name} summary")
        if self._severity != Severity.OK:
            report.add_finding(Finding(self._severity, "stub", f"{self.name} finding"))
        return report


class RawRunDiagnostic(BaseDiagnostic):
    """Overrides run() directly and raises a plain exception from it."""

    name = "raw"
    description = "Module that bypasses check()"

    def check(self, config):
        raise AssertionError("not used")

    def run(self, config=None):
        raise RuntimeError("raw failure")


@pytest.fixture
def stub_factory():
    """Build StubDiagnostic instances."""
    return StubDiagnostic


@pytest.fixture
def config():
    return ModuleConfig()


# =============================================================================
# Fake filesystem trees
# =============================================================================

def write_tree(root: Path, files: dict) -> Path:
    """Create files under root from a {relative path: content} mapping."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def fake_tree(tmp_path):
    """Return a function that populates tmp_path with pseudo-files."""
    def _make(files: dict, subdir: str = "root") -> Path:
        return write_tree(tmp_path / subdir, files)
    return _make


@pytest.fixture
def sample_report():
    """Report with one finding of each non-OK severity, a metric and two recommendations."""
    from whydiag.core.report import Metric, Recommendation, Threshold

    report = DiagnosticReport(module="sample", summary="Sample summary")
    report.add_metric(Metric("Usage", 91.5, "%", Threshold(80, 95)))
    report.add_metric(Metric("States", ["mem", "disk"]))
    report.add_finding(Finding(Severity.INFO, "cat", "info message"))
    report.add_finding(Finding(Severity.WARNING, "cat", "warning message", "some details"))
    report.add_recommendation(Recommendation(4, "Later action", "Less urgent"))
    report.add_recommendation(Recommendation(1, "First action", "Most urgent", command="do-it --now"))
    return report.finalize()
