"""
Constants for kubespectre.

Patterns, limits and catalogue data used by the checks, the logging layer
and the CLI.

SECURITY NOTE: All regex patterns are pre-compiled. Never construct patterns
from user input.
"""

import re
from typing import Final

TOOL_NAME: Final[str] = "kubespectre"
TARGET_TYPE: Final[str] = "kubernetes"
SPECTRE_SCHEMA: Final[str] = "spectre/v1"

# =============================================================================
# ENGINE AND CLI DEFAULTS
# =============================================================================

DEFAULT_CONCURRENCY: Final[int] = 4
DEFAULT_STALE_DAYS: Final[int] = 90
DEFAULT_TIMEOUT: Final[str] = "5m"
DEFAULT_SEVERITY_MIN: Final[str] = "low"
DEFAULT_FORMAT: Final[str] = "text"

OUTPUT_FORMATS: Final[tuple[str, ...]] = ("text", "json", "sarif", "spectrehub")

CONFIG_FILE_NAMES: Final[tuple[str, ...]] = (".kubespectre.yaml", ".kubespectre.yml")
MAX_CONFIG_SIZE_BYTES: Final[int] = 1024 * 1024  # 1 MB
RBAC_FILE_NAME: Final[str] = "kubespectre-rbac.yaml"

# =============================================================================
# KUBERNETES CONVENTIONS
# =============================================================================

CLUSTER_ADMIN_ROLE: Final[str] = "cluster-admin"

# Built-in aggregate roles that legitimately hold wildcards
SYSTEM_ROLE_NAMES: Final[frozenset[str]] = frozenset({
    "cluster-admin",
    "admin",
    "edit",
    "view",
})

SYSTEM_PREFIX: Final[str] = "system:"
SYSTEM_NAMESPACE_PREFIX: Final[str] = "kube-"

# Namespaces excluded from network policy checks
NETWORK_POLICY_SKIP_NAMESPACES: Final[frozenset[str]] = frozenset({
    "kube-system",
    "kube-public",
    "kube-node-lease",
})

SERVICE_ACCOUNT_TOKEN_TYPE: Final[str] = "kubernetes.io/service-account-token"
HELM_RELEASE_SECRET_TYPE: Final[str] = "helm.sh/release.v1"

DEFAULT_SERVICE_ACCOUNT: Final[str] = "default"

APISERVER_NAMESPACE: Final[str] = "kube-system"
APISERVER_LABEL_SELECTOR: Final[str] = "component=kube-apiserver"
AUDIT_POLICY_FLAG: Final[str] = "--audit-policy-file"

IMAGE_DIGEST_MARKER: Final[str] = "@sha256:"
DOCKER_HUB_REGISTRIES: Final[frozenset[str]] = frozenset({"docker.io", "index.docker.io"})

# =============================================================================
# SECRET DETECTION PATTERNS (log redaction)
# =============================================================================

# SECURITY: Never log matches from these patterns

SECRET_PATTERNS: Final[dict[str, re.Pattern[str]]] = {
    "bearer_token": re.compile(
        r"(?i)bearer\s+[A-Za-z0-9\-._~+/]+=*"
    ),
    "jwt_token": re.compile(
        r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"
    ),
    "bootstrap_token": re.compile(
        r"\b[a-z0-9]{6}\.[a-z0-9]{16}\b"
    ),
    "private_key": re.compile(
        r"-----BEGIN (?:RSA |EC |OPENSSH )?PRIVATE KEY-----"
    ),
}

# Keywords that might indicate secrets in key=value text
SECRET_KEYWORDS: Final[frozenset[str]] = frozenset({
    "password", "passwd", "secret", "token", "api_key", "apikey",
    "client-key-data", "client-certificate-data", "client_secret",
    "private_key", "auth-provider", "id-token", "refresh-token",
})

# =============================================================================
# SARIF
# =============================================================================

SARIF_SCHEMA: Final[str] = (
    "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/main/"
    "sarif-2.1/schema/sarif-schema-2.1.0.json"
)
SARIF_VERSION: Final[str] = "2.1.0"

# =============================================================================
# INIT TEMPLATES
# =============================================================================

SAMPLE_CONFIG: Final[str] = """\
# kubespectre configuration

# Namespace to audit (omit to scan all namespaces)
# namespace: default

# Stale secret threshold (days)
stale_days: 90

# Minimum severity to report: critical, high, medium, low
severity_min: low

# Output format: text, json, sarif, spectrehub
format: text

# Audit timeout
timeout: 5m

# Trusted container registries (images from other registries get flagged)
trusted_registries: []
  # - gcr.io/my-project
  # - us-docker.pkg.dev/my-project
  # - 123456789.dkr.ecr.us-east-1.amazonaws.com

# Namespaces to exclude from auditing
# exclude:
#   namespaces:
#     - kube-system
#     - kube-public
"""

SAMPLE_RBAC: Final[str] = """\
# kubespectre ClusterRole and ClusterRoleBinding
# Apply: kubectl apply -f kubespectre-rbac.yaml
apiVersion: v1
kind: ServiceAccount
metadata:
  name: kubespectre
  namespace: kube-system
---
apiVersion: rbac.authorization.k8s.io/v1
kind: ClusterRole
metadata:
  name: kubespectre
rules:
- apiGroups: [""]
  resources: ["pods", "secrets", "serviceaccounts", "namespaces"]
  verbs: ["get", "list"]
- apiGroups: ["networking.k8s.io"]
  resources: ["networkpolicies"]
  verbs: ["get", "list"]
- apiGroups: ["rbac.authorization.k8s.io"]
  resources: ["clusterroles", "clusterrolebindings", "roles", "rolebindings"]
  verbs: ["get", "list"]
---
apiVersion: rbac.authorization.k8s.io/v1
kind: ClusterRoleBinding
metadata:
  name: kubespectre
roleRef:
  apiGroup: rbac.authorization.k8s.io
  kind: ClusterRole
  name: kubespectre
subjects:
- kind: ServiceAccount
  name: kubespectre
  namespace: kube-system
"""
