"""
kubespectre

Read-only Kubernetes security posture auditor. Runs RBAC, workload,
network, secret and image checks against a live cluster and reports the
findings as text, JSON, SARIF or SpectreHub payloads.
"""

from typing import Final

__version__: Final[str] = "0.1.0"

# Public API exports
from kubespectre.core.analyzer import AnalysisResult, analyze
from kubespectre.core.context import AuditContext
from kubespectre.core.engine import AuditEngine
from kubespectre.core.result import Finding, FindingID, ScanResult
from kubespectre.core.severity import Severity
from kubespectre.config import AuditConfig, KubespectreSettings

__all__ = [
    "__version__",
    "AnalysisResult",
    "AuditConfig",
    "AuditContext",
    "AuditEngine",
    "Finding",
    "FindingID",
    "KubespectreSettings",
    "ScanResult",
    "Severity",
    "analyze",
]
