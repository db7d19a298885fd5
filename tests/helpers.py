"""
Kubernetes test doubles.

FakeClusterClient stands in for kubespectre.cluster.ClusterClient. It serves
real kubernetes.client model objects so checks see the same attribute shapes
they see against a live API server. The build_* helpers keep test setup short.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any

from kubernetes import client


class FakeClusterClient:
    """
    In-memory ClusterClient.

    errors maps a method name (e.g. "list_pods") to the exception it raises.
    """

    def __init__(
        self,
        pods: list[Any] | None = None,
        namespaces: list[Any] | None = None,
        secrets: list[Any] | None = None,
        service_accounts: list[Any] | None = None,
        network_policies: dict[str, list[Any]] | None = None,
        cluster_roles: list[Any] | None = None,
        cluster_role_bindings: list[Any] | None = None,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.pods = pods or []
        self.namespaces = namespaces or []
        self.secrets = secrets or []
        self.service_accounts = service_accounts or []
        self.network_policies = network_policies or {}
        self.cluster_roles = cluster_roles or []
        self.cluster_role_bindings = cluster_role_bindings or []
        self.errors = errors or {}
        self.calls: list[str] = []
        self._seen: set[tuple[str, str, str]] = set()
        self._lock = threading.Lock()

    @property
    def resources_seen(self) -> int:
        with self._lock:
            return len(self._seen)

    def reset_seen(self):
        with self._lock:
            self._seen.clear()

    def list_pods(self, ctx, namespace="", label_selector=None):
        items = self._serve(ctx, "list_pods", "Pod", self.pods, namespace)
        if label_selector:
            key, _, value = label_selector.partition("=")
            items = [p for p in items if (p.metadata.labels or {}).get(key) == value]
        return items

    def list_namespaces(self, ctx):
        return self._serve(ctx, "list_namespaces", "Namespace", self.namespaces)

    def list_secrets(self, ctx, namespace=""):
        return self._serve(ctx, "list_secrets", "Secret", self.secrets, namespace)

    def list_service_accounts(self, ctx, namespace=""):
        return self._serve(
            ctx, "list_service_accounts", "ServiceAccount", self.service_accounts, namespace
        )

    def list_network_policies(self, ctx, namespace):
        return self._serve(
            ctx,
            "list_network_policies",
            "NetworkPolicy",
            self.network_policies.get(namespace, []),
        )

    def list_cluster_roles(self, ctx):
        return self._serve(ctx, "list_cluster_roles", "ClusterRole", self.cluster_roles)

    def list_cluster_role_bindings(self, ctx):
        return self._serve(
            ctx, "list_cluster_role_bindings", "ClusterRoleBinding", self.cluster_role_bindings
        )

    def _serve(self, ctx, method, kind, items, namespace=""):
        ctx.raise_if_cancelled()
        self.calls.append(method)
        if method in self.errors:
            raise self.errors[method]
        if namespace:
            items = [i for i in items if i.metadata.namespace == namespace]
        with self._lock:
            self._seen.update(
                (kind, i.metadata.namespace or "", i.metadata.name) for i in items
            )
        return list(items)


def build_pod(
    name: str,
    namespace: str = "default",
    containers: list[client.V1Container] | None = None,
    init_containers: list[client.V1Container] | None = None,
    host_network: bool | None = None,
    host_pid: bool | None = None,
    service_account: str | None = None,
    automount: bool | None = None,
    volumes: list[client.V1Volume] | None = None,
    labels: dict[str, str] | None = None,
) -> client.V1Pod:
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace, labels=labels),
        spec=client.V1PodSpec(
            containers=containers or [client.V1Container(name="app", image="nginx:1.25")],
            init_containers=init_containers,
            host_network=host_network,
            host_pid=host_pid,
            service_account_name=service_account,
            automount_service_account_token=automount,
            volumes=volumes,
        ),
    )


def build_container(
    name: str = "app",
    image: str = "nginx:1.25",
    privileged: bool | None = None,
    command: list[str] | None = None,
    args: list[str] | None = None,
    env: list[client.V1EnvVar] | None = None,
    env_from: list[client.V1EnvFromSource] | None = None,
) -> client.V1Container:
    security_context = (
        client.V1SecurityContext(privileged=privileged) if privileged is not None else None
    )
    return client.V1Container(
        name=name,
        image=image,
        security_context=security_context,
        command=command,
        args=args,
        env=env,
        env_from=env_from,
    )


def build_secret(
    name: str,
    namespace: str = "default",
    age_days: int = 1,
    secret_type: str = "Opaque",
) -> client.V1Secret:
    created = datetime.now(timezone.utc) - timedelta(days=age_days)
    return client.V1Secret(
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            creation_timestamp=created,
        ),
        type=secret_type,
    )


def build_namespace(name: str) -> client.V1Namespace:
    return client.V1Namespace(metadata=client.V1ObjectMeta(name=name))


def build_service_account(
    name: str,
    namespace: str = "default",
    automount: bool | None = None,
) -> client.V1ServiceAccount:
    return client.V1ServiceAccount(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace),
        automount_service_account_token=automount,
    )


def build_network_policy(name: str, namespace: str) -> client.V1NetworkPolicy:
    return client.V1NetworkPolicy(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace),
    )


def build_cluster_role(
    name: str,
    verbs: list[str],
    resources: list[str],
) -> client.V1ClusterRole:
    return client.V1ClusterRole(
        metadata=client.V1ObjectMeta(name=name),
        rules=[client.V1PolicyRule(verbs=verbs, resources=resources, api_groups=[""])],
    )


def build_cluster_role_binding(
    name: str,
    role: str,
    subjects: list[tuple[str, str, str | None]],
) -> client.V1ClusterRoleBinding:
    """subjects are (kind, name, namespace) tuples."""
    return client.V1ClusterRoleBinding(
        metadata=client.V1ObjectMeta(name=name),
        role_ref=client.V1RoleRef(
            api_group="rbac.authorization.k8s.io",
            kind="ClusterRole",
            name=role,
        ),
        subjects=[
            client.RbacV1Subject(kind=kind, name=subject_name, namespace=namespace)
            for kind, subject_name, namespace in subjects
        ],
    )


