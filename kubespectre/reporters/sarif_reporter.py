"""
SARIF 2.1.0 report generator.

Produces a single run whose driver lists every rule kubespectre can emit,
so code scanning dashboards show the full catalogue even on clean runs.
Resources are addressed with k8s:// URIs.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from kubespectre.constants import SARIF_SCHEMA, SARIF_VERSION
from kubespectre.core.result import FindingID
from kubespectre.core.severity import Severity
from kubespectre.reporters.base import BaseReporter

if TYPE_CHECKING:
    from kubespectre.core.result import Finding
    from kubespectre.reporters.data import ReportData


_SARIF_LEVELS: dict[Severity, str] = {
    Severity.CRITICAL: "error",
    Severity.HIGH: "error",
    Severity.MEDIUM: "warning",
    Severity.LOW: "note",
}

# Rules whose usual severity is medium default to warning
_WARNING_RULES = frozenset({
    FindingID.DEFAULT_SERVICE_ACCOUNT,
    FindingID.AUTOMOUNT_TOKEN,
    FindingID.NO_IMAGE_DIGEST,
    FindingID.UNTRUSTED_REGISTRY,
})


def sarif_level(severity: Severity) -> str:
    """Map a severity onto a SARIF result level."""
    return _SARIF_LEVELS.get(severity, "note")


def build_resource_uri(finding: "Finding") -> str:
    """k8s://cluster[/namespace]/resourceType/resourceId"""
    if finding.namespace:
        return (
            f"k8s://{finding.cluster}/{finding.namespace}/"
            f"{finding.resource_type}/{finding.resource_id}"
        )
    return f"k8s://{finding.cluster}/{finding.resource_type}/{finding.resource_id}"


def build_rules() -> list[dict[str, Any]]:
    """Rule descriptors for every known finding ID."""
    return [
        {
            "id": finding_id.value,
            "shortDescription": {"text": finding_id.title},
            "defaultConfiguration": {
                "level": "warning" if finding_id in _WARNING_RULES else "error",
            },
        }
        for finding_id in FindingID
    ]


class SARIFReporter(BaseReporter):
    """Generate SARIF 2.1.0 reports for code scanning integrations."""

    @property
    def format_name(self) -> str:
        return "SARIF"

    def generate(self, data: "ReportData") -> str:
        """Generate SARIF report."""
        report = {
            "$schema": SARIF_SCHEMA,
            "version": SARIF_VERSION,
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": data.tool,
                            "version": data.version,
                            "rules": build_rules(),
                        },
                    },
                    "results": [self._format_result(f) for f in data.findings],
                },
            ],
        }
        return json.dumps(report, indent=2, default=str, ensure_ascii=False)

    def _format_result(self, finding: "Finding") -> dict[str, Any]:
        result: dict[str, Any] = {
            "ruleId": finding.id.value,
            "level": sarif_level(finding.severity),
            "message": {"text": finding.message},
            "locations": [
                {
                    "physicalLocation": {
                        "artifactLocation": {"uri": build_resource_uri(finding)},
                    },
                },
            ],
        }
        if finding.metadata:
            result["properties"] = dict(finding.metadata)
        return result
