"""
Format-agnostic report payload.

Every writer consumes the same ReportData. The cluster identity is carried
only as a hash so reports can be shared without exposing the API server
address or context name.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from kubespectre.constants import TARGET_TYPE, TOOL_NAME

if TYPE_CHECKING:
    from kubespectre.config import AuditConfig
    from kubespectre.core.analyzer import AnalysisResult, Summary
    from kubespectre.core.result import Finding


def compute_target_hash(cluster: str, namespace: str = "") -> str:
    """Stable identifier for the audited cluster and namespace scope."""
    digest = hashlib.sha256(f"cluster:{cluster},namespace:{namespace}".encode("utf-8"))
    return f"sha256:{digest.hexdigest()}"


def format_timestamp(value: datetime) -> str:
    """RFC 3339 in UTC with a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class Target:
    """What was audited."""

    type: str
    uri_hash: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "uri_hash": self.uri_hash}


@dataclass(frozen=True)
class ReportConfig:
    """Audit settings echoed into the report."""

    stale_days: int
    severity_min: str
    namespace: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.namespace:
            data["namespace"] = self.namespace
        data["stale_days"] = self.stale_days
        data["severity_min"] = self.severity_min
        return data


@dataclass(frozen=True)
class ReportData:
    """Everything a writer needs to render one audit."""

    tool: str
    version: str
    timestamp: datetime
    target: Target
    config: ReportConfig
    findings: tuple["Finding", ...]
    summary: "Summary"
    errors: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "tool": self.tool,
            "version": self.version,
            "timestamp": format_timestamp(self.timestamp),
            "target": self.target.to_dict(),
            "config": self.config.to_dict(),
            "findings": [f.to_dict() for f in self.findings],
            "summary": self.summary.to_dict(),
        }
        if self.errors:
            data["errors"] = list(self.errors)
        return data


def build_report_data(
    analysis: "AnalysisResult",
    config: "AuditConfig",
    version: str,
    timestamp: datetime | None = None,
) -> ReportData:
    """Assemble the payload from an analysis result and the audit config."""
    return ReportData(
        tool=TOOL_NAME,
        version=version,
        timestamp=timestamp or datetime.now(timezone.utc),
        target=Target(
            type=TARGET_TYPE,
            uri_hash=compute_target_hash(config.cluster, config.namespace),
        ),
        config=ReportConfig(
            namespace=config.namespace,
            stale_days=config.stale_days,
            severity_min=str(config.severity_min),
        ),
        findings=tuple(analysis.findings),
        summary=analysis.summary,
        errors=tuple(analysis.errors),
    )
