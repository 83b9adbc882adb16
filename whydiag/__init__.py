"""
whydiag - Linux "why" diagnostics

A pluggable framework of diagnostic modules that explain why a subsystem
(CPU, memory, disk, network, thermal, power, ...) behaves as it does.

Usage:
    from whydiag import build_registry, run_all_diagnostics

    # Run every module
    outcomes = run_all_diagnostics()

    # Run one module
    registry = build_registry()
    report = registry.require("mem").run()
"""

__version__ = '0.1.0'

from whydiag.core import (
    BaseDiagnostic,
    DiagnosticError,
    DiagnosticRegistry,
    DiagnosticReport,
    DiagnosticRunner,
    ExecutionError,
    Finding,
    Metric,
    ModuleConfig,
    ModuleOutcome,
    ModuleUnavailableError,
    Permission,
    Recommendation,
    Severity,
    Threshold,
    run_all_modules,
    run_module,
    watch_module,
)
from whydiag.modules import build_registry
from whydiag.output import DiagnosticReporter


# Convenience function
def run_all_diagnostics(config: ModuleConfig = None, quick_mode: bool = False) -> list:
    """
    Run all built-in diagnostics.

    Args:
        config: Run configuration shared by every module
        quick_mode: If True, skip slow diagnostics

    Returns:
        One ModuleOutcome per module, in registry order
    """
    runner = DiagnosticRunner(build_registry())
    return runner.run_all(config=config, quick_mode=quick_mode)


__all__ = [
    'BaseDiagnostic',
    'DiagnosticError',
    'DiagnosticRegistry',
    'DiagnosticReport',
    'DiagnosticReporter',
    'DiagnosticRunner',
    'ExecutionError',
    'Finding',
    'Metric',
    'ModuleConfig',
    'ModuleOutcome',
    'ModuleUnavailableError',
    'Permission',
    'Recommendation',
    'Severity',
    'Threshold',
    'build_registry',
    'run_all_diagnostics',
    'run_all_modules',
    'run_module',
    'watch_module',
]
