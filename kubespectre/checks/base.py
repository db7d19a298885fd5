"""
Abstract base class for security checks.

Defines the capability every check implements. A check receives the audit
context, the read-only cluster client and the frozen audit config, and
returns a list of findings or raises.

Checks must be stateless: the engine runs them concurrently and may run the
same instance repeatedly. New checks implement BaseCheck directly rather
than subclassing an existing concrete check.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from kubespectre.core.result import Finding, FindingID
from kubespectre.core.severity import Severity
from kubespectre.logging_config import get_logger

if TYPE_CHECKING:
    from kubespectre.cluster import ClusterClient
    from kubespectre.config import AuditConfig
    from kubespectre.core.context import AuditContext

logger = get_logger("checks")


class BaseCheck(ABC):
    """
    Abstract base class for security checks.

    Subclasses must implement:
    - name: Stable identifier used in logs and error attribution
    - description: What the check looks for
    - run: Main check logic

    The base class provides:
    - Finding creation helpers
    - Namespace exclusion
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable identifier of the check (e.g., 'rbac')."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Description of what this check looks for."""
        ...

    @property
    def finding_ids(self) -> tuple[FindingID, ...]:
        """Rule identifiers this check can emit."""
        return ()

    @abstractmethod
    def run(
        self,
        ctx: "AuditContext",
        client: "ClusterClient",
        config: "AuditConfig",
    ) -> list[Finding]:
        """
        Run the security check.

        Args:
            ctx: Cancellation context, passed through to every client call
            client: Read-only cluster accessor
            config: Frozen audit configuration

        Returns:
            List of findings from this check

        Raises:
            Exception: Any failure; the engine records it and continues
        """
        ...

    def create_finding(
        self,
        config: "AuditConfig",
        finding_id: FindingID,
        severity: Severity,
        resource_type: str,
        resource_id: str,
        message: str,
        namespace: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> Finding:
        """Create a finding stamped with the configured cluster label."""
        finding = Finding(
            id=finding_id,
            severity=severity,
            resource_type=resource_type,
            resource_id=resource_id,
            namespace=namespace or "",
            cluster=config.cluster,
            message=message,
            metadata=metadata or {},
        )
        self._log_finding(finding)
        return finding

    def is_excluded(self, namespace: str | None, config: "AuditConfig") -> bool:
        """True if resources in this namespace should be skipped."""
        return bool(namespace) and namespace in config.excluded_namespaces

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"

    def _log_finding(self, finding: Finding) -> None:
        logger.debug(
            f"[{self.name}] {finding.id.value} {finding.resource_type}/{finding.resource_id}",
            extra={"severity": str(finding.severity)},
        )


def all_containers(pod: Any) -> list[Any]:
    """Regular and init containers of a pod."""
    spec = pod.spec
    if spec is None:
        return []
    return list(spec.containers or []) + list(spec.init_containers or [])
