"""
API server audit logging check.

Looks for the kube-apiserver static pods in kube-system and verifies that
an audit policy file is configured. On managed control planes (EKS, GKE,
AKS) the API server is not visible as a pod, so the check can only report
that the policy could not be verified.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from kubespectre.checks.base import BaseCheck
from kubespectre.constants import (
    APISERVER_LABEL_SELECTOR,
    APISERVER_NAMESPACE,
    AUDIT_POLICY_FLAG,
)
from kubespectre.core.result import Finding, FindingID
from kubespectre.core.severity import Severity

if TYPE_CHECKING:
    from kubespectre.cluster import ClusterClient
    from kubespectre.config import AuditConfig
    from kubespectre.core.context import AuditContext


class AuditLogCheck(BaseCheck):
    """Check kube-apiserver for an audit policy."""

    @property
    def name(self) -> str:
        return "audit-log"

    @property
    def description(self) -> str:
        return "Verifies that kube-apiserver runs with --audit-policy-file."

    @property
    def finding_ids(self) -> tuple[FindingID, ...]:
        return (FindingID.MISSING_AUDIT_POLICY,)

    def run(
        self,
        ctx: "AuditContext",
        client: "ClusterClient",
        config: "AuditConfig",
    ) -> list[Finding]:
        pods = client.list_pods(
            ctx,
            APISERVER_NAMESPACE,
            label_selector=APISERVER_LABEL_SELECTOR,
        )

        if not pods:
            return [self.create_finding(
                config,
                FindingID.MISSING_AUDIT_POLICY,
                Severity.LOW,
                resource_type="Cluster",
                resource_id="kube-apiserver",
                message=(
                    "kube-apiserver pod not found (managed cluster?); "
                    "audit policy cannot be verified"
                ),
            )]

        return [
            self.create_finding(
                config,
                FindingID.MISSING_AUDIT_POLICY,
                Severity.HIGH,
                resource_type="Pod",
                resource_id=pod.metadata.name,
                namespace=pod.metadata.namespace or APISERVER_NAMESPACE,
                message=f"kube-apiserver does not have {AUDIT_POLICY_FLAG} configured",
            )
            for pod in pods
            if not has_audit_policy(pod)
        ]


def has_audit_policy(pod: Any) -> bool:
    """True if any container passes --audit-policy-file in command or args."""
    if pod.spec is None:
        return False
    for container in pod.spec.containers or []:
        arguments = list(container.command or []) + list(container.args or [])
        if any(arg.startswith(AUDIT_POLICY_FLAG) for arg in arguments):
            return True
    return False
