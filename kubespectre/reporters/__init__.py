"""Report generators module."""

from __future__ import annotations

from kubespectre.reporters.base import BaseReporter
from kubespectre.reporters.data import ReportData, build_report_data, compute_target_hash
from kubespectre.reporters.json_reporter import JSONReporter, SpectreHubReporter
from kubespectre.reporters.sarif_reporter import SARIFReporter
from kubespectre.reporters.text_reporter import TextReporter
from kubespectre.exceptions import ConfigurationError


def get_reporter(format_name: str, color: bool = False) -> BaseReporter:
    """
    Build the writer for an output format.

    Raises:
        ConfigurationError: If the format is not supported
    """
    if format_name == "text":
        return TextReporter(color=color)
    if format_name == "json":
        return JSONReporter()
    if format_name == "spectrehub":
        return SpectreHubReporter()
    if format_name == "sarif":
        return SARIFReporter()
    raise ConfigurationError(
        f"Unsupported output format: {format_name}",
        field="format",
    )


__all__ = [
    "BaseReporter",
    "JSONReporter",
    "ReportData",
    "SARIFReporter",
    "SpectreHubReporter",
    "TextReporter",
    "build_report_data",
    "compute_target_hash",
    "get_reporter",
]
