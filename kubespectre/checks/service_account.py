"""
Service account hygiene check.

Flags pods running as the namespace's default service account and pods that
get an API token mounted automatically.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from kubespectre.checks.base import BaseCheck
from kubespectre.constants import DEFAULT_SERVICE_ACCOUNT
from kubespectre.core.result import Finding, FindingID
from kubespectre.core.severity import Severity

if TYPE_CHECKING:
    from kubespectre.cluster import ClusterClient
    from kubespectre.config import AuditConfig
    from kubespectre.core.context import AuditContext


class ServiceAccountCheck(BaseCheck):
    """Check pods for default service account use and token automount."""

    @property
    def name(self) -> str:
        return "service-account"

    @property
    def description(self) -> str:
        return (
            "Finds pods using the default service account and pods that "
            "automount a service account token."
        )

    @property
    def finding_ids(self) -> tuple[FindingID, ...]:
        return (FindingID.DEFAULT_SERVICE_ACCOUNT, FindingID.AUTOMOUNT_TOKEN)

    def run(
        self,
        ctx: "AuditContext",
        client: "ClusterClient",
        config: "AuditConfig",
    ) -> list[Finding]:
        findings: list[Finding] = []

        pods = client.list_pods(ctx, config.namespace)
        account_defaults = automount_defaults(client.list_service_accounts(ctx, config.namespace))

        for pod in pods:
            namespace = pod.metadata.namespace or ""
            if pod.spec is None or self.is_excluded(namespace, config):
                continue

            account = pod.spec.service_account_name or DEFAULT_SERVICE_ACCOUNT

            if account == DEFAULT_SERVICE_ACCOUNT:
                findings.append(self.create_finding(
                    config,
                    FindingID.DEFAULT_SERVICE_ACCOUNT,
                    Severity.MEDIUM,
                    resource_type="Pod",
                    resource_id=pod.metadata.name,
                    namespace=namespace,
                    message="pod uses the default service account",
                ))

            if token_automounted(
                pod.spec.automount_service_account_token,
                account_defaults.get((namespace, account)),
            ):
                findings.append(self.create_finding(
                    config,
                    FindingID.AUTOMOUNT_TOKEN,
                    Severity.MEDIUM,
                    resource_type="Pod",
                    resource_id=pod.metadata.name,
                    namespace=namespace,
                    message="pod has automountServiceAccountToken enabled",
                    metadata={"service_account": account},
                ))

        return findings


def automount_defaults(accounts: Iterable[Any]) -> dict[tuple[str, str], bool | None]:
    """Map (namespace, name) to the service account's automount setting."""
    return {
        (account.metadata.namespace or "", account.metadata.name): (
            account.automount_service_account_token
        )
        for account in accounts
    }


def token_automounted(pod_setting: bool | None, account_setting: bool | None) -> bool:
    """
    Whether a token is mounted into the pod.

    The pod field overrides the service account field; when neither is set
    Kubernetes mounts the token.
    """
    if pod_setting is not None:
        return pod_setting
    if account_setting is not None:
        return account_setting
    return True
