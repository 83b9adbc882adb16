"""
Diagnostic Runner

Orchestrates execution of diagnostic modules:
- Availability gate before every run
- Sequential execution in a fixed order
- Per-module failure isolation
- Result aggregation and caller-driven repeat (watch) loops
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from whydiag.core.base import BaseDiagnostic, ModuleConfig
from whydiag.core.errors import DiagnosticError, ExecutionError, ModuleUnavailableError
from whydiag.core.registry import DiagnosticRegistry
from whydiag.core.report import DiagnosticReport
from whydiag.core.severity import Severity

logger = logging.getLogger(__name__)


@dataclass
class ModuleOutcome:
    """Result of running one module: a report or an error, never both."""
    module: str
    report: Optional[DiagnosticReport] = None
    error: Optional[DiagnosticError] = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def unavailable(self) -> bool:
        return isinstance(self.error, ModuleUnavailableError)

    def to_dict(self) -> Dict:
        return {
            'module': self.module,
            'ok': self.ok,
            'report': self.report.to_dict() if self.report else None,
            'error': str(self.error) if self.error else None,
            'duration_ms': round(self.duration_ms, 2),
        }


def run_module(module: BaseDiagnostic, config: ModuleConfig) -> DiagnosticReport:
    """
    Run a single module.

    Raises:
        ModuleUnavailableError: if the module cannot run here (run() is not called)
        ExecutionError: if the module's run failed
    """
    if not module.is_available():
        raise ModuleUnavailableError(module.name)
    return module.run(config)


def run_all_modules(modules: Sequence[BaseDiagnostic], config: ModuleConfig) -> List[ModuleOutcome]:
    """
    Run modules in order, capturing each outcome independently.

    One module's failure never stops or changes the others. Output index i
    always corresponds to input module i.
    """
    return [_run_captured(module, config) for module in modules]


def watch_module(
    module: BaseDiagnostic,
    config: ModuleConfig,
    iterations: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[ModuleOutcome]:
    """
    Repeatedly run a module, sleeping ``config.interval`` seconds in between.

    Runs forever when ``iterations`` is None; the caller stops by breaking
    out of the loop or with KeyboardInterrupt.
    """
    count = 0
    while iterations is None or count < iterations:
        if count:
            sleep(config.interval)
        yield _run_captured(module, config)
        count += 1


def _run_captured(module: BaseDiagnostic, config: ModuleConfig) -> ModuleOutcome:
    start = time.time()
    try:
        report = run_module(module, config)
        outcome = ModuleOutcome(module=module.name, report=report)
    except ModuleUnavailableError as e:
        logger.warning(str(e))
        outcome = ModuleOutcome(module=module.name, error=e)
    except ExecutionError as e:
        logger.error(str(e))
        outcome = ModuleOutcome(module=module.name, error=e)
    except Exception as e:
        # Modules that override run() directly may bypass BaseDiagnostic's translation
        logger.error(f"Module {module.name} raised {type(e).__name__}: {e}")
        error = ExecutionError(module.name, str(e) or type(e).__name__, cause=e)
        error.__cause__ = e
        outcome = ModuleOutcome(module=module.name, error=error)
    outcome.duration_ms = (time.time() - start) * 1000
    return outcome


@dataclass
class RunSummary:
    """Summary of a multi-module run."""
    total: int = 0
    by_severity: Dict[Severity, int] = field(default_factory=lambda: {s: 0 for s in Severity})
    unavailable: int = 0
    failed: int = 0
    total_duration_ms: float = 0.0
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def succeeded(self) -> int:
        return self.total - self.unavailable - self.failed

    @property
    def worst_severity(self) -> Severity:
        return Severity.worst(s for s, n in self.by_severity.items() if n)

    def record(self, outcome: ModuleOutcome) -> None:
        self.total += 1
        self.total_duration_ms += outcome.duration_ms
        if outcome.report is not None:
            self.by_severity[outcome.report.overall_severity] += 1
        elif outcome.unavailable:
            self.unavailable += 1
        else:
            self.failed += 1

    def to_dict(self) -> Dict:
        return {
            'total': self.total,
            'succeeded': self.succeeded,
            'unavailable': self.unavailable,
            'failed': self.failed,
            'by_severity': {s.value: n for s, n in self.by_severity.items()},
            'worst_severity': self.worst_severity.value,
            'total_duration_ms': round(self.total_duration_ms, 2),
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
        }


class DiagnosticRunner:
    """
    Runs modules from an explicit registry.

    Supports:
    - Running one module by name
    - Running all (or named) modules in registry order
    - Quick mode (skip slow modules)
    - Progress callbacks
    """

    def __init__(self, registry: DiagnosticRegistry):
        """
        Initialize the runner.

        Args:
            registry: Modules available to this runner
        """
        self._registry = registry
        self._outcomes: List[ModuleOutcome] = []
        self._summary = RunSummary()
        self._progress_callback: Optional[Callable[[ModuleOutcome], None]] = None

    def set_progress_callback(self, callback: Callable[[ModuleOutcome], None]) -> None:
        """
        Set a callback invoked after each module finishes.

        Args:
            callback: Function(outcome)
        """
        self._progress_callback = callback

    def run_single(self, name: str, config: Optional[ModuleConfig] = None) -> DiagnosticReport:
        """
        Run one module by name.

        Raises:
            KeyError: unknown module name
            ModuleUnavailableError, ExecutionError: as run_module()
        """
        module = self._registry.require(name)
        return run_module(module, config or ModuleConfig())

    def run_all(
        self,
        config: Optional[ModuleConfig] = None,
        names: Optional[List[str]] = None,
        quick_mode: bool = False,
        module_configs: Optional[Dict[str, ModuleConfig]] = None,
    ) -> List[ModuleOutcome]:
        """
        Run modules and return one outcome per module, in order.

        Args:
            config: Run configuration shared by every module
            names: Specific modules to run (default: all, registry order)
            quick_mode: Skip modules marked as slow
            module_configs: Per-module configurations replacing ``config``
        """
        config = config or ModuleConfig()
        module_configs = module_configs or {}
        self._outcomes = []
        self._summary = RunSummary()

        modules = self._select(names, quick_mode)
        logger.info(f"Running {len(modules)} module(s)")

        for module in modules:
            outcome = _run_captured(module, module_configs.get(module.name, config))
            self._outcomes.append(outcome)
            self._summary.record(outcome)
            if self._progress_callback:
                self._progress_callback(outcome)

        self._summary.end_time = datetime.now()
        return list(self._outcomes)

    def _select(self, names: Optional[List[str]], quick_mode: bool) -> List[BaseDiagnostic]:
        if names:
            modules = [self._registry.require(name) for name in names]
        else:
            modules = self._registry.get_all()
        if quick_mode:
            modules = [m for m in modules if m.is_quick]
        return modules

    @property
    def outcomes(self) -> List[ModuleOutcome]:
        """Outcomes from the last run_all()."""
        return self._outcomes

    @property
    def reports(self) -> List[DiagnosticReport]:
        """Successful reports from the last run_all(), in order."""
        return [o.report for o in self._outcomes if o.report is not None]

    @property
    def summary(self) -> RunSummary:
        """Summary of the last run_all()."""
        return self._summary
