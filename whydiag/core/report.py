"""
Diagnostic Report Model

Data shapes every diagnostic module populates and every renderer consumes:
findings, metrics (with optional thresholds), recommendations and the
report that owns them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from whydiag.core.severity import Severity

MetricValue = Union[int, float, str, bool, List[str]]


@dataclass(frozen=True)
class Finding:
    """
    A single severity-tagged observation.

    Attributes:
        severity: How serious the observation is
        category: Free-form grouping tag (e.g. "process", "swap")
        message: Human-readable summary
        details: Optional elaboration
    """
    severity: Severity
    category: str
    message: str
    details: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'severity': self.severity.value,
            'category': self.category,
            'message': self.message,
            'details': self.details,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Finding":
        return cls(
            severity=Severity.parse(data['severity']),
            category=data.get('category', ''),
            message=data.get('message', ''),
            details=data.get('details'),
        )


@dataclass(frozen=True)
class Threshold:
    """
    Warning and critical bounds attached to a metric for display.

    When ``critical >= warning`` larger values are worse (temperatures);
    otherwise smaller values are worse (battery percent). Thresholds never
    create findings on their own.
    """
    warning: float
    critical: float

    @property
    def higher_is_worse(self) -> bool:
        return self.critical >= self.warning

    def evaluate(self, value: MetricValue) -> Severity:
        """Classify a value against the bounds (non-numeric values are OK)."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return Severity.OK
        if self.higher_is_worse:
            if value >= self.critical:
                return Severity.CRITICAL
            if value >= self.warning:
                return Severity.WARNING
        else:
            if value <= self.critical:
                return Severity.CRITICAL
            if value <= self.warning:
                return Severity.WARNING
        return Severity.OK

    def to_dict(self) -> Dict[str, float]:
        return {'warning': self.warning, 'critical': self.critical}


def _check_metric_value(value: Any) -> None:
    if isinstance(value, (bool, int, float, str)):
        return
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return
    raise TypeError(
        f"Metric value must be int, float, str, bool or list of str, got {type(value).__name__}"
    )


@dataclass
class Metric:
    """
    A named measurement.

    Metrics are informational; only findings affect a report's severity.
    """
    name: str
    value: MetricValue
    unit: Optional[str] = None
    threshold: Optional[Threshold] = None

    def __post_init__(self):
        _check_metric_value(self.value)
        if isinstance(self.value, list):
            self.value = list(self.value)

    @property
    def display_value(self) -> str:
        """Value rendered as text, without the unit."""
        value = self.value
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, float):
            return f"{value:.2f}"
        if isinstance(value, list):
            return ", ".join(value)
        return str(value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'value': list(self.value) if isinstance(self.value, list) else self.value,
            'unit': self.unit,
            'threshold': self.threshold.to_dict() if self.threshold else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Metric":
        threshold = data.get('threshold')
        return cls(
            name=data['name'],
            value=data['value'],
            unit=data.get('unit'),
            threshold=Threshold(**threshold) if threshold else None,
        )


@dataclass(frozen=True)
class Recommendation:
    """A suggested remedial action (priority 1 is highest)."""
    priority: int
    action: str
    explanation: str
    command: Optional[str] = None

    @property
    def priority_label(self) -> str:
        if self.priority <= 2:
            return "HIGH"
        if self.priority <= 4:
            return "MEDIUM"
        return "LOW"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'priority': self.priority,
            'action': self.action,
            'command': self.command,
            'explanation': self.explanation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Recommendation":
        return cls(
            priority=int(data['priority']),
            action=data['action'],
            explanation=data.get('explanation', ''),
            command=data.get('command'),
        )


@dataclass
class DiagnosticReport:
    """
    Output of one diagnostic module run.

    A module creates the report empty, fills it through ``add_finding``,
    ``add_metric`` and ``add_recommendation``, and finalizes it before
    returning. ``overall_severity`` tracks the worst finding as findings are
    added; ``compute_overall_severity`` re-derives it from scratch.

    Attributes:
        module: Name of the module that produced the report
        summary: Short human-readable summary
        timestamp: When the report was created (UTC)
        overall_severity: Worst severity over all findings
        findings: Observations in the order they were made
        recommendations: Suggested actions
        metrics: Named measurements
        raw_data: Optional opaque payload for machine consumers
    """
    module: str
    summary: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    overall_severity: Severity = Severity.OK
    findings: List[Finding] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    metrics: List[Metric] = field(default_factory=list)
    raw_data: Optional[Any] = None

    def add_finding(self, finding: Finding) -> None:
        """Append a finding and escalate overall severity."""
        self.overall_severity = self.overall_severity.max(finding.severity)
        self.findings.append(finding)

    def add_metric(self, metric: Metric) -> None:
        self.metrics.append(metric)

    def add_recommendation(self, recommendation: Recommendation) -> None:
        self.recommendations.append(recommendation)

    def compute_overall_severity(self) -> Severity:
        """Re-derive overall severity from the current findings."""
        self.overall_severity = Severity.worst(f.severity for f in self.findings)
        return self.overall_severity

    def finalize(self) -> "DiagnosticReport":
        """Recompute overall severity; called once before the report is returned."""
        self.compute_overall_severity()
        return self

    def sorted_recommendations(self) -> List[Recommendation]:
        """Recommendations ordered by priority (stable for equal priorities)."""
        return sorted(self.recommendations, key=lambda r: r.priority)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON projection."""
        return {
            'module': self.module,
            'timestamp': self.timestamp.isoformat(),
            'overall_severity': self.overall_severity.value,
            'summary': self.summary,
            'findings': [f.to_dict() for f in self.findings],
            'recommendations': [r.to_dict() for r in self.recommendations],
            'metrics': [m.to_dict() for m in self.metrics],
            'raw_data': self.raw_data,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiagnosticReport":
        """
        Rebuild a report from its JSON projection.

        The stored ``overall_severity`` is ignored and re-derived from the
        findings.
        """
        report = cls(
            module=data['module'],
            summary=data.get('summary', ''),
            timestamp=datetime.fromisoformat(data['timestamp']) if data.get('timestamp') else datetime.now(timezone.utc),
            findings=[Finding.from_dict(f) for f in data.get('findings', [])],
            recommendations=[Recommendation.from_dict(r) for r in data.get('recommendations', [])],
            metrics=[Metric.from_dict(m) for m in data.get('metrics', [])],
            raw_data=data.get('raw_data'),
        )
        report.compute_overall_severity()
        return report

    def __str__(self) -> str:
        return f"{self.overall_severity.symbol} {self.module}: {self.summary}"
