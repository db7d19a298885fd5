"""Core audit engine module."""

from kubespectre.core.analyzer import AnalysisResult, Summary, analyze
from kubespectre.core.context import AuditContext
from kubespectre.core.engine import AuditEngine
from kubespectre.core.result import Finding, FindingID, ScanResult, sort_findings
from kubespectre.core.severity import Severity, meets_minimum, parse_severity

__all__ = [
    "AnalysisResult",
    "AuditContext",
    "AuditEngine",
    "Finding",
    "FindingID",
    "ScanResult",
    "Severity",
    "Summary",
    "analyze",
    "meets_minimum",
    "parse_severity",
    "sort_findings",
]
