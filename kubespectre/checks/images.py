"""
Image provenance check.

Flags container images referenced by tag instead of digest, and images
pulled from registries outside the configured allow-list.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from kubespectre.checks.base import BaseCheck, all_containers
from kubespectre.constants import DOCKER_HUB_REGISTRIES, IMAGE_DIGEST_MARKER
from kubespectre.core.result import Finding, FindingID
from kubespectre.core.severity import Severity

if TYPE_CHECKING:
    from kubespectre.cluster import ClusterClient
    from kubespectre.config import AuditConfig
    from kubespectre.core.context import AuditContext


class ImageCheck(BaseCheck):
    """
    Check container images for digest pinning and registry trust.

    The registry check only runs when trusted_registries is configured.
    Each pod/image pair is reported once even if several containers share it.
    """

    @property
    def name(self) -> str:
        return "image"

    @property
    def description(self) -> str:
        return (
            "Finds images without a digest pin and images from registries "
            "outside the trusted list."
        )

    @property
    def finding_ids(self) -> tuple[FindingID, ...]:
        return (FindingID.NO_IMAGE_DIGEST, FindingID.UNTRUSTED_REGISTRY)

    def run(
        self,
        ctx: "AuditContext",
        client: "ClusterClient",
        config: "AuditConfig",
    ) -> list[Finding]:
        findings: list[Finding] = []
        seen: set[tuple[str, str, str]] = set()

        for pod in client.list_pods(ctx, config.namespace):
            namespace = pod.metadata.namespace or ""
            if self.is_excluded(namespace, config):
                continue

            for container in all_containers(pod):
                image = container.image or ""
                key = (namespace, pod.metadata.name, image)
                if key in seen:
                    continue
                seen.add(key)

                metadata = {"image": image, "container": container.name}

                if not has_digest(image):
                    findings.append(self.create_finding(
                        config,
                        FindingID.NO_IMAGE_DIGEST,
                        Severity.MEDIUM,
                        resource_type="Pod",
                        resource_id=pod.metadata.name,
                        namespace=namespace,
                        message=f'container "{container.name}" image "{image}" has no digest pin',
                        metadata=metadata,
                    ))

                if config.trusted_registries and not is_trusted_registry(
                    image, config.trusted_registries
                ):
                    findings.append(self.create_finding(
                        config,
                        FindingID.UNTRUSTED_REGISTRY,
                        Severity.MEDIUM,
                        resource_type="Pod",
                        resource_id=pod.metadata.name,
                        namespace=namespace,
                        message=(
                            f'container "{container.name}" image "{image}" '
                            f"from untrusted registry"
                        ),
                        metadata=metadata,
                    ))

        return findings


def has_digest(image: str) -> bool:
    """True if the image reference is pinned by sha256 digest."""
    return IMAGE_DIGEST_MARKER in image


def is_trusted_registry(image: str, trusted: Iterable[str]) -> bool:
    """True if the image comes from one of the trusted registries."""
    trusted = list(trusted)
    for registry in trusted:
        if image == registry or image.startswith((registry + "/", registry + ":")):
            return True

    if is_docker_hub_shorthand(image):
        return any(registry in DOCKER_HUB_REGISTRIES for registry in trusted)
    return False


def is_docker_hub_shorthand(image: str) -> bool:
    """
    True for references that resolve to Docker Hub.

    "nginx", "nginx:1.25" and "library/nginx" have no registry host; a host
    is recognised by a dot in the first path segment.
    """
    first, sep, _ = image.partition("/")
    if not sep:
        return True
    return "." not in first
