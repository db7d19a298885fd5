"""
Tests for severity ranking and parsing.
"""

import pytest

from kubespectre.core.severity import (
    Severity,
    is_known_severity,
    meets_minimum,
    parse_severity,
    severity_rank,
)


class TestSeverity:
    """Tests for the Severity enum."""

    def test_ordering(self):
        """Test that severities compare by rank."""
        assert Severity.CRITICAL > Severity.HIGH > Severity.MEDIUM > Severity.LOW

    def test_ranks(self):
        """Test numeric ranks are 1 through 4."""
        assert [severity_rank(s) for s in Severity] == [1, 2, 3, 4]

    def test_str_is_lowercase_label(self):
        """Test string form matches the wire label."""
        assert str(Severity.CRITICAL) == "critical"
        assert str(Severity.LOW) == "low"

    def test_color(self):
        """Test display helpers are populated."""
        for severity in Severity:
            assert severity.color


class TestMeetsMinimum:
    """Tests for the threshold comparison."""

    @pytest.mark.parametrize("severity", list(Severity))
    @pytest.mark.parametrize("floor", list(Severity))
    def test_matches_rank_comparison(self, severity, floor):
        """Test meets_minimum agrees with rank ordering for every pair."""
        assert meets_minimum(severity, floor) == (severity_rank(severity) >= severity_rank(floor))

    def test_low_floor_keeps_everything(self):
        """Test a low floor admits every severity."""
        assert all(meets_minimum(s, Severity.LOW) for s in Severity)


class TestParseSeverity:
    """Tests for fail-open parsing."""

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("critical", Severity.CRITICAL),
            ("high", Severity.HIGH),
            ("medium", Severity.MEDIUM),
            ("low", Severity.LOW),
        ],
    )
    def test_known_labels(self, label, expected):
        """Test the four lowercase labels parse to their level."""
        assert parse_severity(label) == expected

    @pytest.mark.parametrize("label", ["", None, "urgent", "critcal", "info", "CRITICAL", "High", " high "])
    def test_unknown_labels_fall_back_to_low(self, label):
        """Test unknown or empty labels become low without raising."""
        assert parse_severity(label) == Severity.LOW

    def test_is_known_severity(self):
        """Test detection of unrecognized labels."""
        assert is_known_severity("critical")
        assert not is_known_severity("critcal")
        assert not is_known_severity("")
        assert not is_known_severity("CRITICAL")
