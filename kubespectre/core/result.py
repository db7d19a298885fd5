"""
Audit result data structures.

Findings are immutable once a checker creates them. The engine and the
analysis stage only filter, copy and count them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from kubespectre.core.severity import Severity


# Published rule identifiers. Downstream dashboards and SARIF consumers key on
# these values, so they must never be renamed.
_FINDING_TITLES: dict[str, str] = {
    "WILDCARD_RBAC": "Wildcard RBAC permissions",
    "CLUSTER_ADMIN_BINDING": "Cluster-admin binding to non-system subject",
    "PRIVILEGED_CONTAINER": "Privileged container",
    "HOST_NETWORK": "Host network access",
    "HOST_PID": "Host PID namespace access",
    "MISSING_NETWORK_POLICY": "Missing network policy",
    "UNENCRYPTED_SECRETS": "Unencrypted secrets in etcd",
    "UNUSED_SECRET_MOUNT": "Unused secret mount",
    "STALE_SECRET": "Stale secret",
    "DEFAULT_SERVICE_ACCOUNT": "Default service account used",
    "AUTOMOUNT_TOKEN": "Auto-mounted service account token",
    "NO_IMAGE_DIGEST": "Image without digest pinning",
    "UNTRUSTED_REGISTRY": "Image from untrusted registry",
    "MISSING_AUDIT_POLICY": "Missing audit policy",
}


class FindingID(str, Enum):
    """Machine-readable identifier of a rule category."""

    WILDCARD_RBAC = "WILDCARD_RBAC"
    CLUSTER_ADMIN_BINDING = "CLUSTER_ADMIN_BINDING"
    PRIVILEGED_CONTAINER = "PRIVILEGED_CONTAINER"
    HOST_NETWORK = "HOST_NETWORK"
    HOST_PID = "HOST_PID"
    MISSING_NETWORK_POLICY = "MISSING_NETWORK_POLICY"
    UNENCRYPTED_SECRETS = "UNENCRYPTED_SECRETS"
    UNUSED_SECRET_MOUNT = "UNUSED_SECRET_MOUNT"
    STALE_SECRET = "STALE_SECRET"
    DEFAULT_SERVICE_ACCOUNT = "DEFAULT_SERVICE_ACCOUNT"
    AUTOMOUNT_TOKEN = "AUTOMOUNT_TOKEN"
    NO_IMAGE_DIGEST = "NO_IMAGE_DIGEST"
    UNTRUSTED_REGISTRY = "UNTRUSTED_REGISTRY"
    MISSING_AUDIT_POLICY = "MISSING_AUDIT_POLICY"

    @property
    def title(self) -> str:
        """Short human-readable title of the rule."""
        return _FINDING_TITLES.get(self.value, self.value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Finding:
    """
    A single security posture issue.

    Immutable to ensure findings cannot be modified after creation. An empty
    namespace means the resource is cluster-scoped.
    """

    id: FindingID
    severity: Severity
    resource_type: str
    resource_id: str
    message: str
    namespace: str = ""
    cluster: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        """Validate finding data and freeze metadata."""
        if not isinstance(self.id, FindingID):
            raise TypeError(f"id must be FindingID, got {type(self.id)}")
        if not isinstance(self.severity, Severity):
            raise TypeError(f"severity must be Severity, got {type(self.severity)}")

        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def is_cluster_scoped(self) -> bool:
        return not self.namespace

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "id": self.id.value,
            "severity": str(self.severity),
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "namespace": self.namespace,
            "cluster": self.cluster,
            "message": self.message,
        }
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data


@dataclass(frozen=True)
class ScanResult:
    """
    Raw output of one engine run.

    Finding order reflects checker completion order and is not stable between
    runs. Sort downstream if ordering matters.
    """

    findings: tuple[Finding, ...] = ()
    errors: tuple[str, ...] = ()
    resources_scanned: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "findings", tuple(self.findings))
        object.__setattr__(self, "errors", tuple(self.errors))

    @property
    def total_findings(self) -> int:
        return len(self.findings)


def sort_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Order findings most severe first, then by resource location."""
    return sorted(
        findings,
        key=lambda f: (
            -int(f.severity),
            f.id.value,
            f.namespace,
            f.resource_type,
            f.resource_id,
            f.message,
        ),
    )
