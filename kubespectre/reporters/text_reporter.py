"""
Human-readable terminal report.

Rendered with rich into a string so the same output can go to stdout or a
file. Colour is only used when the reporter is told the target is a
terminal.
"""

from __future__ import annotations

from io import StringIO
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.text import Text

from kubespectre.core.result import sort_findings
from kubespectre.core.severity import Severity
from kubespectre.reporters.base import BaseReporter

if TYPE_CHECKING:
    from kubespectre.core.result import Finding
    from kubespectre.reporters.data import ReportData

_REPORT_WIDTH = 120


class TextReporter(BaseReporter):
    """
    Generate plain text audit reports.

    Findings are listed most severe first, followed by a summary block and
    any check warnings.
    """

    def __init__(self, color: bool = False) -> None:
        """
        Args:
            color: Emit ANSI styling (only sensible for terminals)
        """
        self.color = color

    @property
    def format_name(self) -> str:
        return "Text"

    def generate(self, data: "ReportData") -> str:
        """Generate text report."""
        buffer = StringIO()
        console = Console(
            file=buffer,
            width=_REPORT_WIDTH,
            force_terminal=self.color,
            no_color=not self.color,
            highlight=False,
            soft_wrap=True,
        )

        console.print(f"[bold]{escape(data.tool)}[/bold] v{escape(data.version)}")
        console.print()

        if data.findings:
            console.print(f"Found {len(data.findings)} security issues", style="bold")
            console.print()
            for finding in sort_findings(data.findings):
                console.print(self._format_finding(finding))
        else:
            console.print("No security issues found", style="bold green")

        console.print()
        self._print_summary(console, data)

        if data.errors:
            console.print()
            console.print(f"Warnings ({len(data.errors)}):", style="bold yellow")
            for error in data.errors:
                console.print(Text(f"  - {error}"))

        return buffer.getvalue()

    def _format_finding(self, finding: "Finding") -> Text:
        label = str(finding.severity).upper()
        location = (
            f"{finding.namespace}/{finding.resource_type}/{finding.resource_id}"
            if finding.namespace
            else f"(cluster) {finding.resource_type}/{finding.resource_id}"
        )

        line = Text("  ")
        line.append(f"[{label}]".ljust(11), style=finding.severity.color)
        line.append(f"{finding.id.value}  ", style="bold")
        line.append(location)
        line.append(f"\n             {finding.message}")
        return line

    def _print_summary(self, console: Console, data: "ReportData") -> None:
        summary = data.summary
        console.print("Summary", style="bold")
        console.print(Text(f"  Resources scanned:  {summary.total_resources_scanned}"))
        console.print(Text(f"  Findings:           {summary.total_findings}"))

        for severity in reversed(Severity):
            count = summary.by_severity.get(str(severity), 0)
            if count:
                console.print(
                    Text(f"    {str(severity).ljust(10)}{count}", style=severity.color)
                )
