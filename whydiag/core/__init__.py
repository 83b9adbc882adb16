"""
whydiag Core Module

Contains the severity scale, report model, module contract, runner and
registry for the diagnostics framework.
"""

from whydiag.core.severity import Severity
from whydiag.core.report import (
    DiagnosticReport,
    Finding,
    Metric,
    MetricValue,
    Recommendation,
    Threshold,
)
from whydiag.core.base import BaseDiagnostic, ModuleConfig, Permission
from whydiag.core.errors import DiagnosticError, ExecutionError, ModuleUnavailableError
from whydiag.core.registry import DiagnosticRegistry
from whydiag.core.runner import (
    DiagnosticRunner,
    ModuleOutcome,
    RunSummary,
    run_all_modules,
    run_module,
    watch_module,
)

__all__ = [
    'Severity',
    'DiagnosticReport',
    'Finding',
    'Metric',
    'MetricValue',
    'Recommendation',
    'Threshold',
    'BaseDiagnostic',
    'ModuleConfig',
    'Permission',
    'DiagnosticError',
    'ExecutionError',
    'ModuleUnavailableError',
    'DiagnosticRegistry',
    'DiagnosticRunner',
    'ModuleOutcome',
    'RunSummary',
    'run_all_modules',
    'run_module',
    'watch_module',
]
