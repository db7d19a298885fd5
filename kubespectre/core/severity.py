"""
Severity levels for security findings.

Provides the single ranking used for every threshold and sorting decision.
Four levels exist: critical > high > medium > low.

Parsing is deliberately fail-open: an unrecognized label becomes LOW rather
than raising. Unknown labels coming from newer checkers keep working, but a
typo such as "critcal" is silently downgraded. Callers that care can use
is_known_severity() to warn about it. Labels match exactly, so "CRITICAL" or
" high" are unrecognized too.
"""

from __future__ import annotations

from enum import IntEnum


_SEVERITY_COLORS: dict[int, str] = {
    1: "green",
    2: "yellow",
    3: "orange3",
    4: "red",
}


class Severity(IntEnum):
    """
    Severity levels for cluster findings.

    Using IntEnum allows direct comparison: Severity.CRITICAL > Severity.HIGH.
    The integer value is the rank.
    """

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def color(self) -> str:
        """Get rich color name used for terminal display."""
        return _SEVERITY_COLORS.get(self.value, "white")

    def __str__(self) -> str:
        """Return lowercase name for string representation."""
        return self.name.lower()

    def __repr__(self) -> str:
        return f"Severity.{self.name}"


_LABELS: dict[str, Severity] = {str(s): s for s in Severity}


def severity_rank(severity: Severity) -> int:
    """Numeric rank of a severity, higher is more severe."""
    return int(severity)


def meets_minimum(severity: Severity, floor: Severity) -> bool:
    """Return True if severity is at or above the floor."""
    return severity_rank(severity) >= severity_rank(floor)


def is_known_severity(value: str | None) -> bool:
    """Return True if value names one of the severity levels."""
    return value in _LABELS


def parse_severity(value: str | None) -> Severity:
    """
    Convert a label to a Severity, defaulting to LOW.

    Never raises. Empty, None and unrecognized labels all map to LOW.
    """
    if not is_known_severity(value):
        return Severity.LOW
    return _LABELS[value]
