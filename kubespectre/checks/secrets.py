"""
Secret lifecycle check.

Flags secrets that have not been rotated within the stale threshold and
secrets that no pod references. Service account tokens and Helm release
records are managed by the platform and skipped.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Iterable

from kubespectre.checks.base import BaseCheck, all_containers
from kubespectre.constants import (
    DEFAULT_STALE_DAYS,
    HELM_RELEASE_SECRET_TYPE,
    SERVICE_ACCOUNT_TOKEN_TYPE,
)
from kubespectre.core.result import Finding, FindingID
from kubespectre.core.severity import Severity

if TYPE_CHECKING:
    from kubespectre.cluster import ClusterClient
    from kubespectre.config import AuditConfig
    from kubespectre.core.context import AuditContext

_SKIPPED_TYPES = frozenset({SERVICE_ACCOUNT_TOKEN_TYPE, HELM_RELEASE_SECRET_TYPE})


class SecretsCheck(BaseCheck):
    """
    Check secrets for staleness and missing consumers.

    A secret counts as used when a pod in the same namespace references it
    through a volume, envFrom or an env secretKeyRef.
    """

    @property
    def name(self) -> str:
        return "secret"

    @property
    def description(self) -> str:
        return (
            "Finds secrets older than the stale threshold and secrets not "
            "referenced by any pod."
        )

    @property
    def finding_ids(self) -> tuple[FindingID, ...]:
        return (FindingID.STALE_SECRET, FindingID.UNUSED_SECRET_MOUNT)

    def run(
        self,
        ctx: "AuditContext",
        client: "ClusterClient",
        config: "AuditConfig",
    ) -> list[Finding]:
        findings: list[Finding] = []

        secrets = client.list_secrets(ctx, config.namespace)
        pods = client.list_pods(ctx, config.namespace)
        referenced = referenced_secrets(pods)

        stale_days = config.stale_days if config.stale_days > 0 else DEFAULT_STALE_DAYS
        now = datetime.now(timezone.utc)
        threshold = now - timedelta(days=stale_days)

        for secret in secrets:
            if secret.type in _SKIPPED_TYPES:
                continue

            name = secret.metadata.name
            namespace = secret.metadata.namespace or ""
            if self.is_excluded(namespace, config):
                continue

            created = _as_utc(secret.metadata.creation_timestamp)
            if created is not None and created < threshold:
                age_days = (now - created).days
                findings.append(self.create_finding(
                    config,
                    FindingID.STALE_SECRET,
                    Severity.HIGH,
                    resource_type="Secret",
                    resource_id=name,
                    namespace=namespace,
                    message=(
                        f"secret created {age_days} days ago "
                        f"(threshold: {stale_days} days)"
                    ),
                    metadata={
                        "created": created.strftime("%Y-%m-%dT%H:%M:%SZ"),
                        "age_days": age_days,
                    },
                ))

            if (namespace, name) not in referenced:
                findings.append(self.create_finding(
                    config,
                    FindingID.UNUSED_SECRET_MOUNT,
                    Severity.HIGH,
                    resource_type="Secret",
                    resource_id=name,
                    namespace=namespace,
                    message="secret is not mounted by any pod",
                ))

        return findings


def referenced_secrets(pods: Iterable[Any]) -> set[tuple[str, str]]:
    """Collect (namespace, secret name) pairs referenced by pods."""
    referenced: set[tuple[str, str]] = set()

    for pod in pods:
        if pod.spec is None:
            continue
        namespace = pod.metadata.namespace or ""

        for volume in pod.spec.volumes or []:
            if volume.secret is not None and volume.secret.secret_name:
                referenced.add((namespace, volume.secret.secret_name))

        for container in all_containers(pod):
            for source in container.env_from or []:
                if source.secret_ref is not None and source.secret_ref.name:
                    referenced.add((namespace, source.secret_ref.name))
            for env in container.env or []:
                value_from = env.value_from
                if value_from is not None and value_from.secret_key_ref is not None:
                    referenced.add((namespace, value_from.secret_key_ref.name))

    return referenced


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
