"""
Framework errors.

Only two kinds cross the runner boundary: a module that cannot run on this
host, and a module whose run failed for a systemic reason.
"""

from typing import Optional


class DiagnosticError(Exception):
    """Base class for errors raised at the module boundary."""

    def __init__(self, module: str, message: str):
        super().__init__(message)
        self.module = module


class ModuleUnavailableError(DiagnosticError):
    """Raised when a module declares it cannot run on the current host."""

    def __init__(self, module: str):
        super().__init__(module, f"Module {module} is not available on this system")


class ExecutionError(DiagnosticError):
    """Raised when a module's run fails for a systemic reason."""

    def __init__(self, module: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(module, f"Module {module} failed: {message}")
        self.cause = cause
