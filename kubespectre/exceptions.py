"""
Custom exceptions for kubespectre.

All exceptions inherit from KubespectreError so callers can catch every
tool-specific failure with a single except clause.

Failures fall into three classes:
- configuration/argument errors, raised before any check runs;
- checker-level errors (ClusterAccessError or anything a check raises),
  recorded as warnings while the scan continues;
- fatal errors (AuditAbortedError and subclasses), which abort the scan.
"""

from typing import Any


class KubespectreError(Exception):
    """
    Base exception for all kubespectre errors.

    Attributes:
        message: Human-readable error description
        details: Additional context (sanitized, no credentials)
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class ConfigurationError(KubespectreError):
    """
    Raised when configuration or command-line input is invalid.

    Examples:
        - Unparseable config file
        - Invalid timeout duration
        - Unsupported output format
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class ClusterConnectionError(KubespectreError):
    """Raised when no usable Kubernetes client configuration can be loaded."""
    pass


class ClusterAccessError(KubespectreError):
    """
    Raised when a read against the API server fails.

    Checker-level: the engine records it as a warning and continues with the
    remaining checks.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.status = status
        super().__init__(message, details)


class AuditAbortedError(KubespectreError):
    """
    Raised when the whole audit run is aborted.

    No partial result accompanies this error.
    """
    pass


class AuditCancelledError(AuditAbortedError):
    """Raised when the audit context was cancelled."""
    pass


class AuditTimeoutError(AuditCancelledError):
    """Raised when the audit context deadline expired."""
    pass


class ReportError(KubespectreError):
    """
    Raised when report generation fails.

    Examples:
        - Output file cannot be opened for writing
        - Payload cannot be serialized
    """
    pass
