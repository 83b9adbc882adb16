"""
Severity Levels

Totally ordered severity for findings and reports. Ordering comes from an
explicit rank table, not from declaration order.
"""

from enum import Enum
from typing import Iterable


class Severity(Enum):
    """Severity of a finding or of a whole report."""
    OK = "Ok"
    INFO = "Info"
    WARNING = "Warning"
    CRITICAL = "Critical"

    def __str__(self):
        return self.value

    @property
    def rank(self) -> int:
        """Numeric rank; higher is worse."""
        return _RANKS[self]

    @property
    def label(self) -> str:
        """Fixed display string for terminal output."""
        return _LABELS[self]

    @property
    def symbol(self) -> str:
        """Return a short badge for display."""
        return f"[{self.label}]"

    def max(self, other: "Severity") -> "Severity":
        """Return the more severe of the two (either one on a tie)."""
        return self if self.rank >= other.rank else other

    @classmethod
    def worst(cls, severities: Iterable["Severity"]) -> "Severity":
        """Fold ``max`` over severities, starting from OK."""
        result = cls.OK
        for severity in severities:
            result = result.max(severity)
        return result

    @classmethod
    def parse(cls, text: str) -> "Severity":
        """Look up a severity by value or label, case-insensitively."""
        wanted = text.strip().lower()
        for severity in cls:
            if wanted in (severity.value.lower(), severity.label.lower()):
                return severity
        raise ValueError(f"Unknown severity: {text!r}")

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_RANKS = {
    Severity.OK: 0,
    Severity.INFO: 1,
    Severity.WARNING: 2,
    Severity.CRITICAL: 3,
}

_LABELS = {
    Severity.OK: "OK",
    Severity.INFO: "INFO",
    Severity.WARNING: "WARNING",
    Severity.CRITICAL: "CRITICAL",
}
