"""
Tests for the concurrent audit engine and the cancellation context.
"""

from __future__ import annotations

import threading
import time

import pytest

from helpers import FakeClusterClient
from kubespectre.checks.base import BaseCheck
from kubespectre.core.analyzer import analyze
from kubespectre.core.context import AuditContext
from kubespectre.core.engine import AuditEngine
from kubespectre.core.result import FindingID
from kubespectre.core.severity import Severity
from kubespectre.exceptions import (
    AuditAbortedError,
    AuditCancelledError,
    AuditTimeoutError,
)


class StaticCheck(BaseCheck):
    """Returns a fixed list of findings."""

    def __init__(self, check_name, findings=None, delay=0.0):
        self._name = check_name
        self._findings = findings or []
        self._delay = delay
        self.runs = 0

    @property
    def name(self):
        return self._name

    @property
    def description(self):
        return "static test check"

    def run(self, ctx, client, config):
        self.runs += 1
        if self._delay:
            ctx.wait(self._delay)
        client.list_namespaces(ctx)
        return list(self._findings)


class FailingCheck(StaticCheck):
    """Raises a fixed error."""

    def __init__(self, check_name, error):
        super().__init__(check_name)
        self._error = error

    def run(self, ctx, client, config):
        self.runs += 1
        raise self._error


class NoneCheck(StaticCheck):
    """Forgets to return its findings."""

    def run(self, ctx, client, config):
        self.runs += 1
        return None


class GeneratorCheck(StaticCheck):
    """Yields findings lazily, optionally failing part way through."""

    def __init__(self, check_name, findings=None, error=None):
        super().__init__(check_name, findings)
        self._error = error

    def run(self, ctx, client, config):
        self.runs += 1
        yield from self._findings
        if self._error is not None:
            raise self._error


class ConcurrencyProbe(StaticCheck):
    """Records the peak number of simultaneously running probes."""

    def __init__(self, check_name, tracker):
        super().__init__(check_name)
        self._tracker = tracker

    def run(self, ctx, client, config):
        with self._tracker["lock"]:
            self._tracker["active"] += 1
            self._tracker["peak"] = max(self._tracker["peak"], self._tracker["active"])
        time.sleep(0.02)
        with self._tracker["lock"]:
            self._tracker["active"] -= 1
        return []


class TestAuditContext:
    """Tests for AuditContext."""

    def test_no_deadline(self):
        """Test a context without timeout never expires by itself."""
        ctx = AuditContext()
        assert ctx.remaining() is None
        assert not ctx.cancelled
        ctx.raise_if_cancelled()

    def test_cancel_keeps_first_reason(self):
        """Test only the first cancel reason is kept."""
        ctx = AuditContext()
        ctx.cancel("first")
        ctx.cancel("second")
        assert ctx.cancelled
        assert ctx.reason == "first"
        with pytest.raises(AuditCancelledError, match="first"):
            ctx.raise_if_cancelled()

    def test_deadline_expiry(self):
        """Test an expired deadline raises the timeout error."""
        ctx = AuditContext(timeout=0.01)
        time.sleep(0.03)
        assert ctx.cancelled
        assert ctx.timed_out
        with pytest.raises(AuditTimeoutError):
            ctx.raise_if_cancelled()

    def test_zero_timeout_disables_deadline(self):
        """Test non-positive timeouts mean no deadline."""
        assert AuditContext(timeout=0).remaining() is None

    def test_wait_returns_on_cancel(self):
        """Test wait wakes up when another thread cancels."""
        ctx = AuditContext()
        threading.Timer(0.01, ctx.cancel).start()
        assert ctx.wait(5.0) is True


class TestAuditEngine:
    """Tests for AuditEngine.run_all."""

    def test_merges_findings(self, ctx, audit_config, finding_factory):
        """Test findings from every check are combined."""
        a = StaticCheck("a", [finding_factory(resource_id="one")])
        b = StaticCheck("b", [finding_factory(resource_id="two"), finding_factory(resource_id="three")])

        result = AuditEngine(FakeClusterClient()).run_all(ctx, [a, b], audit_config)

        assert result.total_findings == 3
        assert {f.resource_id for f in result.findings} == {"one", "two", "three"}
        assert result.errors == ()

    def test_failing_check_degrades_run(self, ctx, audit_config, finding_factory):
        """Test one failing check leaves the others' findings intact."""
        good = StaticCheck("good", [finding_factory()])
        bad = FailingCheck("bad", RuntimeError("boom"))

        result = AuditEngine(FakeClusterClient()).run_all(ctx, [good, bad], audit_config)

        assert result.total_findings == 1
        assert result.errors == ("bad: boom",)

    def test_host_network_and_connection_refused(self, ctx, audit_config, finding_factory):
        """Test the host-network finding survives a sibling's connection failure."""
        finding = finding_factory(FindingID.HOST_NETWORK, Severity.HIGH)
        pod_check = StaticCheck("pod-security", [finding])
        broken = FailingCheck("network-policy", ConnectionError("connection refused"))

        result = AuditEngine(FakeClusterClient()).run_all(ctx, [pod_check, broken], audit_config)

        assert list(result.findings) == [finding]
        assert len(result.errors) == 1
        assert "network-policy" in result.errors[0]
        assert "connection refused" in result.errors[0]

        analysis = analyze(result, Severity.LOW)
        assert list(analysis.findings) == [finding]
        assert analysis.errors == result.errors

    @pytest.mark.parametrize("concurrency", [0, -1, -10])
    def test_non_positive_concurrency_means_four(self, concurrency):
        """Test C <= 0 behaves as 4."""
        engine = AuditEngine(FakeClusterClient(), concurrency=concurrency)
        assert engine.concurrency == 4

    @pytest.mark.parametrize("concurrency", [1, 2, 3])
    def test_concurrency_bound(self, ctx, audit_config, concurrency):
        """Test no more than C checks run at once."""
        tracker = {"lock": threading.Lock(), "active": 0, "peak": 0}
        probes = [ConcurrencyProbe(f"probe-{i}", tracker) for i in range(8)]

        AuditEngine(FakeClusterClient(), concurrency=concurrency).run_all(
            ctx, probes, audit_config
        )

        assert 1 <= tracker["peak"] <= concurrency

    def test_cancelled_context_runs_nothing(self, audit_config):
        """Test an already cancelled context starts no check."""
        ctx = AuditContext()
        ctx.cancel("stop")
        check = StaticCheck("a")

        with pytest.raises(AuditCancelledError):
            AuditEngine(FakeClusterClient()).run_all(ctx, [check], audit_config)

        assert check.runs == 0

    def test_deadline_aborts_run(self, audit_config, finding_factory):
        """Test an expiring deadline raises instead of returning partial results."""
        ctx = AuditContext(timeout=0.05)
        fast = StaticCheck("fast", [finding_factory()])
        slow = StaticCheck("slow", delay=5.0)

        started = time.monotonic()
        with pytest.raises(AuditTimeoutError):
            AuditEngine(FakeClusterClient()).run_all(ctx, [fast, slow], audit_config)

        assert time.monotonic() - started < 2.0

    def test_cancellation_error_is_not_recorded(self, audit_config):
        """Test a check interrupted by cancellation does not show up as an error."""
        ctx = AuditContext(timeout=0.05)
        slow = StaticCheck("slow", delay=5.0)

        with pytest.raises(AuditCancelledError) as excinfo:
            AuditEngine(FakeClusterClient()).run_all(ctx, [slow], audit_config)

        assert isinstance(excinfo.value, AuditTimeoutError)

    def test_engine_fault_is_fatal(self, ctx, audit_config):
        """Test a failure outside check.run aborts the run."""

        def broken_callback(check_name, status):
            raise RuntimeError("callback exploded")

        engine = AuditEngine(FakeClusterClient(), progress_callback=broken_callback)
        with pytest.raises(AuditAbortedError, match="callback exploded"):
            engine.run_all(ctx, [StaticCheck("a")], audit_config)

    def test_progress_callback(self, ctx, audit_config):
        """Test progress is reported when each check starts and finishes."""
        events = []
        lock = threading.Lock()

        def record(check_name, status):
            with lock:
                events.append((check_name, status))

        AuditEngine(FakeClusterClient(), progress_callback=record).run_all(
            ctx,
            [StaticCheck("a"), FailingCheck("b", ValueError("x"))],
            audit_config,
        )

        assert ("a", "running") in events
        assert ("a", "done") in events
        assert ("b", "failed") in events

    def test_resources_scanned_from_client(self, ctx, audit_config):
        """Test the resource count comes from distinct objects the client returned."""
        from helpers import build_namespace

        client = FakeClusterClient(namespaces=[build_namespace("a"), build_namespace("b")])
        checks = [StaticCheck("x"), StaticCheck("y")]

        result = AuditEngine(client).run_all(ctx, checks, audit_config)

        assert result.resources_scanned == 2

    def test_repeat_runs_are_set_equal(self, ctx, audit_config, finding_factory):
        """Test rerunning the same checks yields the same findings."""
        checks = [
            StaticCheck("a", [finding_factory(resource_id="1")]),
            StaticCheck("b", [finding_factory(resource_id="2")]),
        ]
        engine = AuditEngine(FakeClusterClient())

        first = engine.run_all(ctx, checks, audit_config)
        second = engine.run_all(ctx, checks, audit_config)

        assert set(first.findings) == set(second.findings)

    def test_none_return_is_a_check_error(self, ctx, audit_config, finding_factory):
        """Test a check returning None degrades the run instead of aborting it."""
        good = StaticCheck("good", [finding_factory()])
        broken = NoneCheck("broken")

        result = AuditEngine(FakeClusterClient()).run_all(ctx, [good, broken], audit_config)

        assert result.total_findings == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("broken: ")

    def test_generator_check_is_collected(self, ctx, audit_config, finding_factory):
        """Test findings yielded lazily are merged like a returned list."""
        lazy = GeneratorCheck("lazy", [finding_factory(resource_id="one"), finding_factory(resource_id="two")])
        good = StaticCheck("good", [finding_factory(resource_id="three")])

        result = AuditEngine(FakeClusterClient()).run_all(ctx, [lazy, good], audit_config)

        assert {f.resource_id for f in result.findings} == {"one", "two", "three"}
        assert result.errors == ()

    def test_generator_failure_keeps_no_partial_findings(self, ctx, audit_config, finding_factory):
        """Test a generator that fails midway contributes an error and no findings."""
        lazy = GeneratorCheck("lazy", [finding_factory(resource_id="one")], error=RuntimeError("boom"))
        good = StaticCheck("good", [finding_factory(resource_id="two")])

        result = AuditEngine(FakeClusterClient()).run_all(ctx, [lazy, good], audit_config)

        assert [f.resource_id for f in result.findings] == ["two"]
        assert result.errors == ("lazy: boom",)

    def test_expired_deadline_starts_no_queued_check(self, audit_config):
        """Test a check still queued when the deadline fires never starts."""
        ctx = AuditContext(timeout=0.05)
        slow = StaticCheck("slow", delay=5.0)
        queued = StaticCheck("queued")

        with pytest.raises(AuditTimeoutError):
            AuditEngine(FakeClusterClient(), concurrency=1).run_all(
                ctx, [slow, queued], audit_config
            )

        assert slow.runs == 1
        assert queued.runs == 0

    def test_resources_scanned_is_per_run(self, ctx, audit_config):
        """Test a second run does not report resources listed by the first."""
        from helpers import build_namespace

        client = FakeClusterClient(namespaces=[build_namespace("a"), build_namespace("b")])
        engine = AuditEngine(client)

        first = engine.run_all(ctx, [StaticCheck("lists")], audit_config)
        second = engine.run_all(ctx, [NoneCheck("lists-nothing")], audit_config)

        assert first.resources_scanned == 2
        assert second.resources_scanned == 0
