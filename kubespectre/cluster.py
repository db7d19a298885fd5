"""
Read-only Kubernetes resource accessor.

ClusterClient is the only object checkers use to reach the API server. It
exposes list operations and nothing else, so no check can mutate the audited
cluster. Every call checks the audit context first and bounds the HTTP
request by the time left on the context deadline.

Client configuration is built into a private ApiClient; the global
kubernetes.client default configuration is never touched.
"""

from __future__ import annotations

import json
import os
import threading
from typing import Any, Callable

from kubernetes import client, config as k8s_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from kubespectre.core.context import AuditContext
from kubespectre.exceptions import ClusterAccessError, ClusterConnectionError
from kubespectre.logging_config import get_logger

logger = get_logger("cluster")

FALLBACK_CLUSTER_NAME = "current-context"

# Lower bound for the per-request timeout handed to urllib3
_MIN_REQUEST_TIMEOUT = 0.001


class ClusterClient:
    """
    Read-only accessor over CoreV1, RbacAuthorizationV1 and NetworkingV1.

    Safe to share between worker threads. An empty namespace lists across
    all namespaces.
    """

    def __init__(self, api_client: client.ApiClient) -> None:
        self._core = client.CoreV1Api(api_client)
        self._rbac = client.RbacAuthorizationV1Api(api_client)
        self._networking = client.NetworkingV1Api(api_client)
        self._seen: set[tuple[str, str, str]] = set()
        self._seen_lock = threading.Lock()

    @property
    def resources_seen(self) -> int:
        """Number of distinct resources returned since the last reset."""
        with self._seen_lock:
            return len(self._seen)

    def reset_seen(self) -> None:
        """Start a fresh resource count, e.g. at the beginning of an audit run."""
        with self._seen_lock:
            self._seen.clear()

    def list_pods(
        self,
        ctx: AuditContext,
        namespace: str = "",
        label_selector: str | None = None,
    ) -> list[client.V1Pod]:
        kwargs: dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        if namespace:
            return self._list(
                ctx, "Pod", "list pods", self._core.list_namespaced_pod, namespace, **kwargs
            )
        return self._list(
            ctx, "Pod", "list pods", self._core.list_pod_for_all_namespaces, **kwargs
        )

    def list_namespaces(self, ctx: AuditContext) -> list[client.V1Namespace]:
        return self._list(ctx, "Namespace", "list namespaces", self._core.list_namespace)

    def list_secrets(self, ctx: AuditContext, namespace: str = "") -> list[client.V1Secret]:
        if namespace:
            return self._list(
                ctx, "Secret", "list secrets", self._core.list_namespaced_secret, namespace
            )
        return self._list(
            ctx, "Secret", "list secrets", self._core.list_secret_for_all_namespaces
        )

    def list_service_accounts(
        self,
        ctx: AuditContext,
        namespace: str = "",
    ) -> list[client.V1ServiceAccount]:
        if namespace:
            return self._list(
                ctx,
                "ServiceAccount",
                "list service accounts",
                self._core.list_namespaced_service_account,
                namespace,
            )
        return self._list(
            ctx,
            "ServiceAccount",
            "list service accounts",
            self._core.list_service_account_for_all_namespaces,
        )

    def list_network_policies(
        self,
        ctx: AuditContext,
        namespace: str,
    ) -> list[client.V1NetworkPolicy]:
        return self._list(
            ctx,
            "NetworkPolicy",
            f"list network policies in {namespace}",
            self._networking.list_namespaced_network_policy,
            namespace,
        )

    def list_cluster_roles(self, ctx: AuditContext) -> list[client.V1ClusterRole]:
        return self._list(ctx, "ClusterRole", "list cluster roles", self._rbac.list_cluster_role)

    def list_cluster_role_bindings(
        self,
        ctx: AuditContext,
    ) -> list[client.V1ClusterRoleBinding]:
        return self._list(
            ctx,
            "ClusterRoleBinding",
            "list cluster role bindings",
            self._rbac.list_cluster_role_binding,
        )

    def _list(
        self,
        ctx: AuditContext,
        kind: str,
        action: str,
        call: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> list[Any]:
        """
        Run one list call under the audit context.

        Raises:
            AuditCancelledError: If the context is done before or during the call
            ClusterAccessError: If the API server rejects or cannot serve the call
        """
        ctx.raise_if_cancelled()

        remaining = ctx.remaining()
        if remaining is not None:
            kwargs["_request_timeout"] = max(remaining, _MIN_REQUEST_TIMEOUT)

        try:
            response = call(*args, **kwargs)
        except ApiException as e:
            ctx.raise_if_cancelled()
            raise ClusterAccessError(
                f"{action}: {describe_api_exception(e)}",
                status=e.status,
            ) from e
        except Exception as e:
            # Request timeouts caused by the deadline surface as cancellation
            ctx.raise_if_cancelled()
            raise ClusterAccessError(f"{action}: {e}") from e

        items = list(response.items or [])
        self._record(kind, items)
        logger.debug(f"{action}: {len(items)} item(s)")
        return items

    def _record(self, kind: str, items: list[Any]) -> None:
        keys = {
            (kind, item.metadata.namespace or "", item.metadata.name or "")
            for item in items
            if item.metadata is not None
        }
        with self._seen_lock:
            self._seen.update(keys)


def describe_api_exception(error: ApiException) -> str:
    """Prefer the API server's status message over the bare HTTP reason."""
    if error.body:
        try:
            body = json.loads(error.body)
        except (TypeError, ValueError):
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
    if error.reason:
        return str(error.reason)
    return f"HTTP {error.status}"


def build_client(
    kubeconfig: str | None = None,
    context: str | None = None,
) -> ClusterClient:
    """
    Build a ClusterClient.

    Priority:
        1. explicit kubeconfig path and/or context override
        2. $KUBECONFIG
        3. in-cluster service account
        4. default ~/.kube/config

    Raises:
        ClusterConnectionError: If no configuration can be loaded
    """
    return ClusterClient(_build_api_client(kubeconfig, context))


def _build_api_client(kubeconfig: str | None, context: str | None) -> client.ApiClient:
    config_file = os.path.expanduser(kubeconfig) if kubeconfig else None

    try:
        if config_file or context:
            return k8s_config.new_client_from_config(config_file=config_file, context=context)

        if os.environ.get("KUBECONFIG"):
            return k8s_config.new_client_from_config()

        configuration = client.Configuration()
        try:
            k8s_config.load_incluster_config(client_configuration=configuration)
        except ConfigException:
            logger.debug("In-cluster configuration unavailable, using default kubeconfig")
        else:
            return client.ApiClient(configuration)

        return k8s_config.new_client_from_config()

    except (ConfigException, OSError) as e:
        raise ClusterConnectionError(f"load cluster configuration: {e}") from e


def resolve_cluster_name(
    kubeconfig: str | None = None,
    context: str | None = None,
) -> str:
    """Cluster label stamped on findings: context override, active context, or fallback."""
    if context:
        return context

    config_file = os.path.expanduser(kubeconfig) if kubeconfig else None
    try:
        _, active = k8s_config.list_kube_config_contexts(config_file=config_file)
    except (ConfigException, OSError) as e:
        logger.debug(f"Could not read active context: {e}")
        return FALLBACK_CLUSTER_NAME

    if active and active.get("name"):
        return str(active["name"])
    return FALLBACK_CLUSTER_NAME
