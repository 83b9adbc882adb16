"""
Base classes for the whydiag diagnostics framework.

Provides the module contract every diagnostic implements, the run
configuration passed to it, and the permission vocabulary modules use to
declare what they need.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional
import logging
import time

from whydiag.core.errors import ExecutionError
from whydiag.core.report import DiagnosticReport

logger = logging.getLogger(__name__)

_TRUE_STRINGS = ("1", "true", "yes", "on")
_FALSE_STRINGS = ("0", "false", "no", "off")


class Permission(Enum):
    """Capabilities a module may need. Informational only."""
    ROOT = "root"
    READ_PROC = "read_proc"
    READ_SYS = "read_sys"
    NET_ADMIN = "net_admin"
    PERF_EVENT = "perf_event"

    def __str__(self):
        return self.value


@dataclass
class ModuleConfig:
    """
    Options passed to every module run.

    Attributes:
        verbose: Include extra low-priority findings
        watch: Caller-level repeat hint (modules run once per call)
        interval: Suggested seconds between caller-driven repeats
        top_n: Cap on ranked sub-findings such as top processes
        json_output: Rendering hint, normally ignored by modules
        extra_args: Module-specific string options (path, depth, device, ...)
    """
    verbose: bool = False
    watch: bool = False
    interval: float = 2
    top_n: int = 10
    json_output: bool = False
    extra_args: Dict[str, str] = field(default_factory=dict)

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.extra_args.get(key)
        return default if value is None or value == "" else value

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        value = self.extra_args.get(key)
        if value is None:
            return default
        try:
            return int(value.strip())
        except ValueError:
            logger.warning(f"Ignoring non-integer option {key}={value!r}")
            return default

    def get_float(self, key: str, default: Optional[float] = None) -> Optional[float]:
        value = self.extra_args.get(key)
        if value is None:
            return default
        try:
            return float(value.strip())
        except ValueError:
            logger.warning(f"Ignoring non-numeric option {key}={value!r}")
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.extra_args.get(key)
        if value is None:
            return default
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        logger.warning(f"Ignoring non-boolean option {key}={value!r}")
        return default


class BaseDiagnostic(ABC):
    """
    Abstract base class for all diagnostic modules.

    Subclass this and implement ``check()``. ``run()`` wraps it with timing,
    finalization and error translation, so ``check()`` only has to build the
    report.

    Failure policy: a missing sensor, device or tool is a finding, not an
    error. Only conditions that make the diagnosis itself impossible may
    raise, and ``run()`` reports those as ``ExecutionError``.

    Example:
        class UptimeDiagnostic(BaseDiagnostic):
            name = "uptime"
            description = "Report how long the host has been up"

            def check(self, config):
                report = self.new_report("Uptime")
                ...
                return report
    """

    # Override these in subclasses
    name: str = "base_diagnostic"
    description: str = "Base diagnostic module"
    permissions: FrozenSet[Permission] = frozenset()
    is_quick: bool = True  # If False, skipped by "all --quick"

    @abstractmethod
    def check(self, config: ModuleConfig) -> DiagnosticReport:
        """
        Collect data and build the report.

        Args:
            config: Run configuration

        Returns:
            DiagnosticReport (finalized by run())
        """

    def is_available(self) -> bool:
        """Cheap, side-effect-free check that the module can run here."""
        return True

    def required_permissions(self) -> FrozenSet[Permission]:
        return frozenset(self.permissions)

    def run(self, config: Optional[ModuleConfig] = None) -> DiagnosticReport:
        """
        Execute the diagnostic and return a finalized report.

        Raises:
            ExecutionError: if check() failed for any reason
        """
        config = config or ModuleConfig()
        start = time.time()
        try:
            report = self.check(config)
        except ExecutionError:
            raise
        except Exception as e:
            logger.debug(f"{self.name} raised", exc_info=True)
            raise ExecutionError(self.name, str(e) or type(e).__name__, cause=e) from e

        report.finalize()
        logger.debug(f"{self.name} finished in {(time.time() - start) * 1000:.0f}ms "
                     f"({report.overall_severity.label})")
        return report

    def new_report(self, summary: str) -> DiagnosticReport:
        """Create an empty report owned by this module."""
        return DiagnosticReport(module=self.name, summary=summary)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.name})>"
