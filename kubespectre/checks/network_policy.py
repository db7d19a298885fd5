"""
Network policy check.

A namespace without any NetworkPolicy is default-allow-all: every pod can
reach every other pod in the cluster.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kubespectre.checks.base import BaseCheck
from kubespectre.constants import NETWORK_POLICY_SKIP_NAMESPACES
from kubespectre.core.result import Finding, FindingID
from kubespectre.core.severity import Severity

if TYPE_CHECKING:
    from kubespectre.cluster import ClusterClient
    from kubespectre.config import AuditConfig
    from kubespectre.core.context import AuditContext


class NetworkPolicyCheck(BaseCheck):
    """Check namespaces for missing NetworkPolicy resources."""

    @property
    def name(self) -> str:
        return "network-policy"

    @property
    def description(self) -> str:
        return "Finds namespaces without any NetworkPolicy (default-allow-all traffic)."

    @property
    def finding_ids(self) -> tuple[FindingID, ...]:
        return (FindingID.MISSING_NETWORK_POLICY,)

    def run(
        self,
        ctx: "AuditContext",
        client: "ClusterClient",
        config: "AuditConfig",
    ) -> list[Finding]:
        findings: list[Finding] = []

        for namespace in client.list_namespaces(ctx):
            name = namespace.metadata.name
            if name in NETWORK_POLICY_SKIP_NAMESPACES:
                continue
            if config.namespace and name != config.namespace:
                continue
            if self.is_excluded(name, config):
                continue

            if not client.list_network_policies(ctx, name):
                findings.append(self.create_finding(
                    config,
                    FindingID.MISSING_NETWORK_POLICY,
                    Severity.HIGH,
                    resource_type="Namespace",
                    resource_id=name,
                    namespace=name,
                    message="namespace has no NetworkPolicy (default-allow-all)",
                ))

        return findings
