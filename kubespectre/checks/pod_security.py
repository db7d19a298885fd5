"""
Pod security check.

Flags pods that share host namespaces or run privileged containers, the
three settings that give a workload a direct path onto the node.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kubespectre.checks.base import BaseCheck, all_containers
from kubespectre.core.result import Finding, FindingID
from kubespectre.core.severity import Severity

if TYPE_CHECKING:
    from kubespectre.cluster import ClusterClient
    from kubespectre.config import AuditConfig
    from kubespectre.core.context import AuditContext


class PodSecurityCheck(BaseCheck):
    """Check pods for hostNetwork, hostPID and privileged containers."""

    @property
    def name(self) -> str:
        return "pod-security"

    @property
    def description(self) -> str:
        return (
            "Finds pods using the host network or host PID namespace and "
            "containers running in privileged mode."
        )

    @property
    def finding_ids(self) -> tuple[FindingID, ...]:
        return (
            FindingID.HOST_NETWORK,
            FindingID.HOST_PID,
            FindingID.PRIVILEGED_CONTAINER,
        )

    def run(
        self,
        ctx: "AuditContext",
        client: "ClusterClient",
        config: "AuditConfig",
    ) -> list[Finding]:
        findings: list[Finding] = []

        for pod in client.list_pods(ctx, config.namespace):
            namespace = pod.metadata.namespace or ""
            if pod.spec is None or self.is_excluded(namespace, config):
                continue

            def pod_finding(finding_id: FindingID, message: str) -> Finding:
                return self.create_finding(
                    config,
                    finding_id,
                    Severity.CRITICAL,
                    resource_type="Pod",
                    resource_id=pod.metadata.name,
                    namespace=namespace,
                    message=message,
                )

            if pod.spec.host_network:
                findings.append(pod_finding(FindingID.HOST_NETWORK, "pod uses host network"))

            if pod.spec.host_pid:
                findings.append(pod_finding(FindingID.HOST_PID, "pod uses host PID namespace"))

            for container in all_containers(pod):
                context = container.security_context
                if context is not None and context.privileged:
                    findings.append(pod_finding(
                        FindingID.PRIVILEGED_CONTAINER,
                        f'container "{container.name}" runs in privileged mode',
                    ))

        return findings
