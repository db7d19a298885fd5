"""
Concurrent audit engine.

Runs a set of checks against one cluster client with bounded parallelism
and merges their output into a single ScanResult.

A check that raises degrades the run: its error is recorded and its
siblings continue. Cancellation or expiry of the audit context aborts the
run: pending checks are dropped, in-flight checks return at their next
cluster call, and no result is produced.
"""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING, Callable, Iterable

from kubespectre.constants import DEFAULT_CONCURRENCY
from kubespectre.core.result import Finding, ScanResult
from kubespectre.exceptions import AuditAbortedError
from kubespectre.logging_config import get_logger

if TYPE_CHECKING:
    from kubespectre.checks.base import BaseCheck
    from kubespectre.cluster import ClusterClient
    from kubespectre.config import AuditConfig
    from kubespectre.core.context import AuditContext

logger = get_logger("engine")

ProgressCallback = Callable[[str, str], None]

# Upper bound on how long the engine waits between context checks
_POLL_INTERVAL = 0.25


class _Collector:
    """Owns the shared result lists. Workers only append through it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.findings: list[Finding] = []
        self.errors: list[str] = []

    def add_findings(self, findings: list[Finding]) -> None:
        with self._lock:
            self.findings.extend(findings)

    def add_error(self, message: str) -> None:
        with self._lock:
            self.errors.append(message)


class AuditEngine:
    """
    Runs checks in parallel against a shared read-only client.

    Example:
        engine = AuditEngine(client, concurrency=4)
        result = engine.run_all(AuditContext(timeout=300), all_checks(), config)
    """

    def __init__(
        self,
        client: "ClusterClient",
        concurrency: int = DEFAULT_CONCURRENCY,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            client: Cluster accessor shared by every check
            concurrency: Maximum checks in flight; values <= 0 mean the default
            progress_callback: Optional callback(check_name, status)
        """
        self.client = client
        self.concurrency = concurrency if concurrency > 0 else DEFAULT_CONCURRENCY
        self.progress_callback = progress_callback

    def run_all(
        self,
        ctx: "AuditContext",
        checks: Iterable["BaseCheck"],
        config: "AuditConfig",
    ) -> ScanResult:
        """
        Run every check and merge the results.

        Returns only after every check has finished, failed, or been
        abandoned through cancellation.

        Raises:
            AuditCancelledError: If the context was cancelled
            AuditTimeoutError: If the context deadline expired
            AuditAbortedError: If the engine itself failed
        """
        checks = list(checks)
        ctx.raise_if_cancelled()

        logger.debug(
            f"Starting audit with {len(checks)} check(s)",
            extra={"concurrency": self.concurrency, "cluster": config.cluster},
        )

        # resources_scanned describes this run only
        reset_seen = getattr(self.client, "reset_seen", None)
        if reset_seen is not None:
            reset_seen()

        collector = _Collector()
        executor = ThreadPoolExecutor(
            max_workers=self.concurrency,
            thread_name_prefix="kubespectre-check",
        )
        try:
            pending: set[Future] = {
                executor.submit(self._run_check, ctx, check, config, collector)
                for check in checks
            }
            while pending:
                if ctx.cancelled:
                    for future in pending:
                        future.cancel()
                    break

                done, pending = wait(
                    pending,
                    timeout=self._poll_timeout(ctx),
                    return_when=FIRST_COMPLETED,
                )
                for future in done:
                    self._raise_engine_fault(future)
        except BaseException:
            # Stop in-flight checks at their next cluster call
            ctx.cancel("audit interrupted")
            raise
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        ctx.raise_if_cancelled()

        result = ScanResult(
            findings=collector.findings,
            errors=collector.errors,
            resources_scanned=getattr(self.client, "resources_seen", 0) or 0,
        )
        logger.info(
            f"Audit complete: {result.total_findings} finding(s), "
            f"{len(result.errors)} check error(s)"
        )
        return result

    def _run_check(
        self,
        ctx: "AuditContext",
        check: "BaseCheck",
        config: "AuditConfig",
        collector: _Collector,
    ) -> None:
        if ctx.cancelled:
            return

        self._notify(check.name, "running")
        try:
            # Materialized here so a bad return value counts as a check failure
            findings = list(check.run(ctx, self.client, config))
        except Exception as e:
            if ctx.cancelled:
                # Abandoned: the fatal error is raised once the pool drains
                return
            logger.warning(f"Check '{check.name}' failed: {e}")
            collector.add_error(f"{check.name}: {e}")
            self._notify(check.name, "failed")
            return

        collector.add_findings(findings)
        logger.debug(f"Check '{check.name}' produced {len(findings)} finding(s)")
        self._notify(check.name, "done")

    def _notify(self, check_name: str, status: str) -> None:
        if self.progress_callback is not None:
            self.progress_callback(check_name, status)

    @staticmethod
    def _poll_timeout(ctx: "AuditContext") -> float:
        remaining = ctx.remaining()
        if remaining is None:
            return _POLL_INTERVAL
        return min(remaining, _POLL_INTERVAL)

    @staticmethod
    def _raise_engine_fault(future: Future) -> None:
        """Surface failures that escaped _run_check itself."""
        if future.cancelled():
            return
        error = future.exception()
        if error is None:
            return
        if isinstance(error, AuditAbortedError):
            raise error
        logger.error(f"Audit engine failure: {type(error).__name__}: {error}")
        raise AuditAbortedError(
            f"audit engine failure: {error}",
            details={"error_type": type(error).__name__},
        ) from error
