"""Security checks module."""

from __future__ import annotations

from typing import Callable

from kubespectre.checks.audit_log import AuditLogCheck
from kubespectre.checks.base import BaseCheck
from kubespectre.checks.images import ImageCheck
from kubespectre.checks.network_policy import NetworkPolicyCheck
from kubespectre.checks.pod_security import PodSecurityCheck
from kubespectre.checks.rbac import RBACCheck
from kubespectre.checks.secrets import SecretsCheck
from kubespectre.checks.service_account import ServiceAccountCheck


def all_checks() -> list[BaseCheck]:
    """Full catalogue, in reporting order."""
    return [
        RBACCheck(),
        PodSecurityCheck(),
        NetworkPolicyCheck(),
        SecretsCheck(),
        ServiceAccountCheck(),
        ImageCheck(),
        AuditLogCheck(),
    ]


def rbac_only_checks() -> list[BaseCheck]:
    """Catalogue used by the rbac command."""
    return [RBACCheck()]


CATALOGUES: dict[str, Callable[[], list[BaseCheck]]] = {
    "full": all_checks,
    "rbac": rbac_only_checks,
}


def get_catalogue(name: str) -> list[BaseCheck]:
    """
    Build a fresh set of checks for a named catalogue.

    Raises:
        KeyError: If the catalogue name is unknown
    """
    try:
        factory = CATALOGUES[name]
    except KeyError:
        valid = ", ".join(sorted(CATALOGUES))
        raise KeyError(f"Unknown catalogue '{name}'. Valid values: {valid}") from None
    return factory()


__all__ = [
    "BaseCheck",
    "RBACCheck",
    "PodSecurityCheck",
    "NetworkPolicyCheck",
    "SecretsCheck",
    "ServiceAccountCheck",
    "ImageCheck",
    "AuditLogCheck",
    "CATALOGUES",
    "all_checks",
    "rbac_only_checks",
    "get_catalogue",
]
