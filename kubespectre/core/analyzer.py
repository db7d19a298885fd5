"""
Post-scan analysis.

Applies the severity floor to a ScanResult and computes the grouped counts
shown in every report. Pure: no I/O, no shared state.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from kubespectre.core.result import Finding, ScanResult
from kubespectre.core.severity import Severity, meets_minimum


@dataclass(frozen=True)
class Summary:
    """
    Aggregate counts over retained findings.

    Only keys with a non-zero count are present.
    """

    total_resources_scanned: int = 0
    total_findings: int = 0
    by_severity: dict[str, int] = field(default_factory=dict)
    by_resource_type: dict[str, int] = field(default_factory=dict)
    by_finding_id: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total_resources_scanned": self.total_resources_scanned,
            "total_findings": self.total_findings,
            "by_severity": dict(self.by_severity),
            "by_resource_type": dict(self.by_resource_type),
            "by_finding_id": dict(self.by_finding_id),
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Findings at or above the floor, their summary, and checker errors."""

    findings: tuple[Finding, ...]
    summary: Summary
    errors: tuple[str, ...] = ()

    @property
    def has_findings(self) -> bool:
        return bool(self.findings)


def analyze(result: ScanResult, floor: Severity) -> AnalysisResult:
    """
    Filter findings by severity floor and summarize them.

    Findings below the floor appear in no count. Errors and the resource
    count pass through unchanged. The retained findings keep their input
    order.
    """
    retained = tuple(f for f in result.findings if meets_minimum(f.severity, floor))

    by_severity: Counter[str] = Counter()
    by_resource_type: Counter[str] = Counter()
    by_finding_id: Counter[str] = Counter()
    for finding in retained:
        by_severity[str(finding.severity)] += 1
        by_resource_type[finding.resource_type] += 1
        by_finding_id[finding.id.value] += 1

    summary = Summary(
        total_resources_scanned=result.resources_scanned,
        total_findings=len(retained),
        by_severity=dict(by_severity),
        by_resource_type=dict(by_resource_type),
        by_finding_id=dict(by_finding_id),
    )
    return AnalysisResult(findings=retained, summary=summary, errors=result.errors)
