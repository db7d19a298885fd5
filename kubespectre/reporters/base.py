"""
Abstract base class for report generators.

Writers render a ReportData into a string. Writing goes to an already open
text stream so the CLI can validate the destination before the scan runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, TextIO

from kubespectre.exceptions import ReportError
from kubespectre.logging_config import get_logger

if TYPE_CHECKING:
    from kubespectre.reporters.data import ReportData

logger = get_logger("reporters")


class BaseReporter(ABC):
    """
    Abstract base class for report generators.

    Subclasses must implement:
    - format_name: Name of the output format
    - generate: Main report generation logic
    """

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Name of the report format (e.g., 'JSON', 'SARIF')."""
        ...

    @abstractmethod
    def generate(self, data: "ReportData") -> str:
        """
        Generate the report content.

        Args:
            data: Report payload

        Returns:
            Report content as string
        """
        ...

    def write(self, data: "ReportData", stream: TextIO) -> None:
        """
        Generate the report and write it to an open stream.

        Raises:
            ReportError: If generation or writing fails
        """
        try:
            content = self.generate(data)
        except Exception as e:
            raise ReportError(
                f"Failed to generate {self.format_name} report: {e}"
            ) from e

        if not content.endswith("\n"):
            content += "\n"

        try:
            stream.write(content)
            stream.flush()
        except OSError as e:
            raise ReportError(f"Failed to write {self.format_name} report: {e}") from e

        logger.debug(f"{self.format_name} report written ({len(content)} bytes)")
