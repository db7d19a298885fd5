"""
RBAC analysis check.

Flags cluster-admin bindings to non-system subjects and custom ClusterRoles
that grant wildcard verbs or resources.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from kubespectre.checks.base import BaseCheck
from kubespectre.constants import (
    CLUSTER_ADMIN_ROLE,
    SYSTEM_NAMESPACE_PREFIX,
    SYSTEM_PREFIX,
    SYSTEM_ROLE_NAMES,
)
from kubespectre.core.result import Finding, FindingID
from kubespectre.core.severity import Severity

if TYPE_CHECKING:
    from kubespectre.cluster import ClusterClient
    from kubespectre.config import AuditConfig
    from kubespectre.core.context import AuditContext


class RBACCheck(BaseCheck):
    """
    Check RBAC for privilege concentration.

    Detects:
    - cluster-admin bound to users, groups or service accounts outside
      the system namespaces
    - ClusterRoles with '*' in verbs or resources
    """

    @property
    def name(self) -> str:
        return "rbac"

    @property
    def description(self) -> str:
        return (
            "Finds cluster-admin bindings to non-system subjects and custom "
            "ClusterRoles granting wildcard verbs or resources."
        )

    @property
    def finding_ids(self) -> tuple[FindingID, ...]:
        return (FindingID.CLUSTER_ADMIN_BINDING, FindingID.WILDCARD_RBAC)

    def run(
        self,
        ctx: "AuditContext",
        client: "ClusterClient",
        config: "AuditConfig",
    ) -> list[Finding]:
        findings: list[Finding] = []

        for binding in client.list_cluster_role_bindings(ctx):
            findings.extend(self._check_binding(binding, config))

        for role in client.list_cluster_roles(ctx):
            finding = self._check_role(role, config)
            if finding is not None:
                findings.append(finding)

        return findings

    def _check_binding(self, binding: Any, config: "AuditConfig") -> list[Finding]:
        if binding.role_ref is None or binding.role_ref.name != CLUSTER_ADMIN_ROLE:
            return []

        findings: list[Finding] = []
        for subject in binding.subjects or []:
            if is_system_subject(subject.name, subject.namespace):
                continue
            if self.is_excluded(subject.namespace, config):
                continue
            findings.append(self.create_finding(
                config,
                FindingID.CLUSTER_ADMIN_BINDING,
                Severity.CRITICAL,
                resource_type="ClusterRoleBinding",
                resource_id=binding.metadata.name,
                message=(
                    f"cluster-admin bound to {subject.kind} "
                    f"{subject.namespace or ''}/{subject.name}"
                ),
                metadata={"subject_kind": subject.kind, "subject_name": subject.name},
            ))
        return findings

    def _check_role(self, role: Any, config: "AuditConfig") -> Finding | None:
        if is_system_role(role.metadata.name):
            return None

        # One finding per role is enough to flag it
        for rule in role.rules or []:
            verbs = list(rule.verbs or [])
            resources = list(rule.resources or [])
            if "*" in verbs or "*" in resources:
                return self.create_finding(
                    config,
                    FindingID.WILDCARD_RBAC,
                    Severity.CRITICAL,
                    resource_type="ClusterRole",
                    resource_id=role.metadata.name,
                    message=f"wildcard permission: verbs={verbs} resources={resources}",
                )
        return None


def is_system_subject(name: str | None, namespace: str | None) -> bool:
    """True for control-plane identities that legitimately hold cluster-admin."""
    if namespace and namespace.startswith(SYSTEM_NAMESPACE_PREFIX):
        return True
    return bool(name) and name.startswith(SYSTEM_PREFIX)


def is_system_role(name: str | None) -> bool:
    if not name:
        return False
    return name.startswith(SYSTEM_PREFIX) or name in SYSTEM_ROLE_NAMES
