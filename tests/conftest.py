"""
Pytest fixtures and configuration.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any, Callable, Generator

import pytest

from kubespectre.config import AuditConfig
from kubespectre.core.context import AuditContext
from kubespectre.core.result import Finding, FindingID
from kubespectre.core.severity import Severity


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def ctx() -> AuditContext:
    """Audit context without a deadline."""
    return AuditContext()


@pytest.fixture
def audit_config() -> AuditConfig:
    """Default audit configuration for a cluster labelled 'test'."""
    return AuditConfig(cluster="test")


@pytest.fixture
def finding_factory() -> Callable[..., Finding]:
    """Build a Finding with sensible defaults."""

    def make(
        finding_id: FindingID = FindingID.HOST_NETWORK,
        severity: Severity = Severity.HIGH,
        resource_type: str = "Pod",
        resource_id: str = "web-0",
        namespace: str = "default",
        message: str = "pod uses host network",
        **kwargs: Any,
    ) -> Finding:
        return Finding(
            id=finding_id,
            severity=severity,
            resource_type=resource_type,
            resource_id=resource_id,
            namespace=namespace,
            message=message,
            cluster=kwargs.pop("cluster", "test"),
            **kwargs,
        )

    return make


@pytest.fixture
def mixed_findings(finding_factory) -> list[Finding]:
    """One finding at each severity level."""
    return [
        finding_factory(FindingID.PRIVILEGED_CONTAINER, Severity.CRITICAL, resource_id="a"),
        finding_factory(FindingID.HOST_NETWORK, Severity.HIGH, resource_id="b"),
        finding_factory(FindingID.NO_IMAGE_DIGEST, Severity.MEDIUM, resource_id="c"),
        finding_factory(
            FindingID.MISSING_AUDIT_POLICY,
            Severity.LOW,
            resource_type="Cluster",
            resource_id="kube-apiserver",
            namespace="",
        ),
    ]
