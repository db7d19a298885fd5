"""
JSON report generators.

Both formats carry the same spectre/v1 payload and differ only in the key
that names the schema: "$schema" for plain JSON output, "schema" for the
SpectreHub ingestion envelope.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from kubespectre.constants import SPECTRE_SCHEMA
from kubespectre.reporters.base import BaseReporter

if TYPE_CHECKING:
    from kubespectre.reporters.data import ReportData


class JSONReporter(BaseReporter):
    """
    Generate spectre/v1 JSON reports.

    Suitable for:
    - CI/CD pipeline integration
    - Custom dashboards
    """

    schema_key = "$schema"

    def __init__(self, pretty: bool = True) -> None:
        """
        Initialize JSON reporter.

        Args:
            pretty: If True, output formatted JSON with indentation
        """
        self.pretty = pretty

    @property
    def format_name(self) -> str:
        return "JSON"

    def generate(self, data: "ReportData") -> str:
        """Generate JSON report."""
        envelope = self._build_envelope(data)
        if self.pretty:
            return json.dumps(envelope, indent=2, default=str, ensure_ascii=False)
        return json.dumps(envelope, default=str, ensure_ascii=False)

    def _build_envelope(self, data: "ReportData") -> dict[str, Any]:
        envelope: dict[str, Any] = {self.schema_key: SPECTRE_SCHEMA}
        envelope.update(data.to_dict())
        return envelope


class SpectreHubReporter(JSONReporter):
    """Generate the SpectreHub envelope."""

    schema_key = "schema"

    @property
    def format_name(self) -> str:
        return "SpectreHub"
