"""
Command-line interface for kubespectre.

Provides a click CLI with:
- Full and RBAC-only audits
- Text, JSON, SARIF and SpectreHub output
- Progress spinner and diagnostics on stderr, reports on stdout or a file
- Config scaffolding and catalogue listing

Exit codes:
    0  scan completed (with or without findings)
    1  cluster connection failure or aborted scan
    2  configuration or argument error
"""

from __future__ import annotations

import errno
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from kubespectre import __version__
from kubespectre.checks import get_catalogue
from kubespectre.cluster import build_client, resolve_cluster_name
from kubespectre.config import KubespectreSettings, load_config, parse_duration
from kubespectre.constants import (
    CONFIG_FILE_NAMES,
    OUTPUT_FORMATS,
    RBAC_FILE_NAME,
    SAMPLE_CONFIG,
    SAMPLE_RBAC,
    TOOL_NAME,
)
from kubespectre.core.analyzer import analyze
from kubespectre.core.context import AuditContext
from kubespectre.core.engine import AuditEngine
from kubespectre.core.severity import is_known_severity
from kubespectre.exceptions import (
    AuditAbortedError,
    ClusterConnectionError,
    ConfigurationError,
    ReportError,
)
from kubespectre.logging_config import get_logger, setup_logging
from kubespectre.reporters import BaseReporter, build_report_data, get_reporter

logger = get_logger("cli")

_ERROR_HINTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("no configuration has been provided", "Invalid kube-config file", "kube-config"),
        "No kubeconfig found. Set KUBECONFIG or use --kubeconfig flag",
    ),
    (
        ("Unauthorized", "401"),
        "Authentication failed. Check your kubeconfig credentials or context",
    ),
    (
        ("Forbidden", "403"),
        "Insufficient permissions. kubespectre needs a ClusterRole with get/list "
        "on target resources (see 'kubespectre init')",
    ),
    (
        ("connection refused", "Connection refused"),
        "Cannot reach the Kubernetes API server. Verify the cluster is running "
        "and accessible",
    ),
    (
        ("deadline exceeded",),
        "Operation timed out. Try increasing --timeout or narrowing --namespace scope",
    ),
)


def enhance_error(action: str, error: Exception) -> str:
    """Prefix an error with the failed action and add a hint for common cluster issues."""
    message = f"{action}: {error}"
    text = str(error)
    for needles, hint in _ERROR_HINTS:
        if any(needle in text for needle in needles):
            return f"{message}\n  hint: {hint}"
    return message


@click.group()
@click.version_option(version=__version__, prog_name=TOOL_NAME)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose logging"
)
@click.option(
    "--quiet", "-q",
    is_flag=True,
    help="Suppress progress and non-essential output"
)
@click.option(
    "--no-color",
    is_flag=True,
    help="Disable colored output"
)
@click.option(
    "--log-json",
    is_flag=True,
    help="Emit logs as JSON lines on stderr"
)
@click.option(
    "--kubeconfig",
    type=click.Path(dir_okay=False),
    help="Path to kubeconfig file"
)
@click.option(
    "--context",
    "kube_context",
    help="Kubernetes context to use"
)
@click.option(
    "--namespace", "-n",
    default="",
    help="Namespace to audit (default: all)"
)
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file (default: ./.kubespectre.yaml)"
)
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    no_color: bool,
    log_json: bool,
    kubeconfig: Optional[str],
    kube_context: Optional[str],
    namespace: str,
    config_path: Optional[Path],
) -> None:
    """
    kubespectre - Kubernetes security posture auditor.

    Audits RBAC permissions, pod security, network policies, secret
    lifecycle, service accounts, image provenance and audit logging.
    Only reads from the cluster.

    Examples:

        # Full audit of the current context
        kubespectre audit

        # One namespace, SARIF output for code scanning
        kubespectre -n payments audit --format sarif -o kubespectre.sarif

        # RBAC only, high severity and above
        kubespectre rbac --severity-min high
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["no_color"] = no_color
    ctx.obj["kubeconfig"] = kubeconfig
    ctx.obj["context"] = kube_context
    ctx.obj["namespace"] = namespace
    ctx.obj["config_path"] = config_path
    ctx.obj["console"] = Console(stderr=True, no_color=no_color, highlight=False)

    log_level = "DEBUG" if verbose else ("WARNING" if quiet else "INFO")
    setup_logging(level=log_level, json_output=log_json, no_color=no_color)


def _report_options(include_stale_days: bool):
    """Options shared by the audit and rbac commands."""

    def decorator(f):
        f = click.option(
            "--timeout",
            default=None,
            help="Audit timeout, e.g. 90s or 5m (default: 5m)"
        )(f)
        if include_stale_days:
            f = click.option(
                "--stale-days",
                type=click.IntRange(min=0),
                default=None,
                help="Threshold for stale secrets in days (default: 90)"
            )(f)
        f = click.option(
            "--severity-min",
            default=None,
            help="Minimum severity: critical, high, medium, low (default: low)"
        )(f)
        f = click.option(
            "--output", "-o",
            type=click.Path(dir_okay=False, allow_dash=True),
            default=None,
            help="Output file path (default: stdout)"
        )(f)
        f = click.option(
            "--format", "-f",
            "output_format",
            type=click.Choice(OUTPUT_FORMATS),
            default=None,
            help="Output format (default: text)"
        )(f)
        return f

    return decorator


@main.command()
@_report_options(include_stale_days=True)
@click.pass_context
def audit(
    ctx: click.Context,
    output_format: Optional[str],
    output: Optional[str],
    severity_min: Optional[str],
    stale_days: Optional[int],
    timeout: Optional[str],
) -> None:
    """
    Run the full security posture audit.

    Requires a kubeconfig with read access to pods, secrets, service
    accounts, namespaces, network policies and RBAC resources.
    """
    _run_audit(
        ctx,
        catalogue="full",
        output_format=output_format,
        output=output,
        severity_min=severity_min,
        stale_days=stale_days,
        timeout=timeout,
    )


@main.command()
@_report_options(include_stale_days=False)
@click.pass_context
def rbac(
    ctx: click.Context,
    output_format: Optional[str],
    output: Optional[str],
    severity_min: Optional[str],
    timeout: Optional[str],
) -> None:
    """Audit RBAC only: wildcard roles and cluster-admin bindings."""
    _run_audit(
        ctx,
        catalogue="rbac",
        output_format=output_format,
        output=output,
        severity_min=severity_min,
        stale_days=None,
        timeout=timeout,
    )


def _run_audit(
    ctx: click.Context,
    catalogue: str,
    output_format: Optional[str],
    output: Optional[str],
    severity_min: Optional[str],
    stale_days: Optional[int],
    timeout: Optional[str],
) -> None:
    """Load config, scan the cluster, write the report and exit."""
    console: Console = ctx.obj["console"]

    try:
        settings = load_config(ctx.obj.get("config_path"))
        output_format = output_format or settings.format
        timeout_seconds = parse_duration(timeout) if timeout else settings.timeout_seconds
        _warn_unknown_severity(console, severity_min or settings.severity_min)

        color = (
            not ctx.obj.get("no_color", False)
            and output in (None, "-")
            and sys.stdout.isatty()
        )
        reporter = get_reporter(output_format, color=color)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        sys.exit(2)

    # Fail on an unwritable destination before touching the cluster. The file
    # itself is only opened once there is a report to write.
    try:
        _check_writable(output)
    except OSError as e:
        console.print(
            f"[red]Error:[/red] cannot open output {escape(str(output))}: "
            f"{escape(e.strerror or str(e))}"
        )
        sys.exit(2)

    exit_code = _scan_and_report(
        ctx,
        settings,
        catalogue,
        reporter,
        output,
        severity_min=severity_min,
        stale_days=stale_days,
        timeout_seconds=timeout_seconds,
    )

    sys.exit(exit_code)


def _scan_and_report(
    ctx: click.Context,
    settings: KubespectreSettings,
    catalogue: str,
    reporter: BaseReporter,
    output: Optional[str],
    severity_min: Optional[str],
    stale_days: Optional[int],
    timeout_seconds: float,
) -> int:
    """Run the engine and write the report. Returns the exit code."""
    console: Console = ctx.obj["console"]
    quiet = ctx.obj.get("quiet", False)
    kubeconfig = ctx.obj.get("kubeconfig")
    kube_context = ctx.obj.get("context")

    try:
        client = build_client(kubeconfig=kubeconfig, context=kube_context)
    except ClusterConnectionError as e:
        _print_error(console, enhance_error("connect to cluster", e))
        return 1

    audit_config = settings.to_audit_config(
        cluster=resolve_cluster_name(kubeconfig, kube_context),
        namespace=ctx.obj.get("namespace") or None,
        stale_days=stale_days,
        severity_min=severity_min,
    )

    logger.info(
        f"Starting {catalogue} audit",
        extra={
            "namespace": audit_config.namespace or "all",
            "severity_min": str(audit_config.severity_min),
        },
    )

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            disable=quiet,
            transient=True,
        ) as progress:
            task = progress.add_task("Starting checks...", total=None)

            def update_progress(check_name: str, status: str) -> None:
                progress.update(task, description=f"Check {check_name}: {status}")

            engine = AuditEngine(client, progress_callback=update_progress)
            result = engine.run_all(
                AuditContext(timeout=timeout_seconds),
                get_catalogue(catalogue),
                audit_config,
            )
    except AuditAbortedError as e:
        _print_error(console, enhance_error("audit cluster", e))
        return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Audit cancelled by user[/yellow]")
        return 130

    analysis = analyze(result, audit_config.severity_min)
    data = build_report_data(analysis, audit_config, version=__version__)

    try:
        with click.open_file(output or "-", mode="w", encoding="utf-8") as stream:
            reporter.write(data, stream)
    except OSError as e:
        _print_error(console, f"cannot open output {output}: {e.strerror or e}")
        return 1
    except ReportError as e:
        _print_error(console, str(e))
        return 1

    if not quiet:
        _display_summary(console, analysis.summary.total_findings, len(analysis.errors))

    return 0


def _check_writable(output: Optional[str]) -> None:
    """
    Raise OSError if a report could not be written to output.

    Nothing is created or truncated; stdout ("-" or None) always passes.
    """
    if output in (None, "-"):
        return

    path = Path(output)
    if path.is_dir():
        raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), output)

    parent = path.parent
    if not parent.is_dir():
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(parent))

    target = path if path.exists() else parent
    if not os.access(target, os.W_OK):
        raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), output)


def _print_error(console: Console, message: str) -> None:
    console.print(f"[red]Error:[/red] {escape(message)}")


def _warn_unknown_severity(console: Console, label: Optional[str]) -> None:
    """Unknown labels are treated as low; say so instead of failing silently."""
    if label and not is_known_severity(label):
        console.print(
            f"[yellow]Warning:[/yellow] unknown severity '{escape(label)}', using 'low'"
        )


def _display_summary(console: Console, total_findings: int, error_count: int) -> None:
    """Print a one-line outcome to stderr."""
    if total_findings:
        console.print(f"[bold]Audit complete:[/bold] {total_findings} finding(s)")
    else:
        console.print("[green]Audit complete: no findings[/green]")
    if error_count:
        console.print(
            f"[yellow]{error_count} check(s) failed; see warnings in the report[/yellow]"
        )


@main.command()
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite existing files"
)
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Generate a sample .kubespectre.yaml and RBAC policy."""
    console: Console = ctx.obj["console"]
    config_path = Path(CONFIG_FILE_NAMES[0])
    rbac_path = Path(RBAC_FILE_NAME)

    for path in (config_path, rbac_path):
        if path.exists() and not force:
            _print_error(console, f"{path} already exists (use --force to overwrite)")
            sys.exit(1)

    try:
        config_path.write_text(SAMPLE_CONFIG, encoding="utf-8")
        rbac_path.write_text(SAMPLE_RBAC, encoding="utf-8")
    except OSError as e:
        _print_error(console, str(e))
        sys.exit(1)

    click.echo(f"Created {config_path} and {rbac_path}")
    click.echo("\nNext steps:")
    click.echo(f"  1. Edit {config_path} to configure trusted registries")
    click.echo(f"  2. Apply RBAC policy: kubectl apply -f {rbac_path}")
    click.echo("  3. Run: kubespectre audit")


@main.command()
def checks() -> None:
    """List all available security checks."""
    table = Table(title="Available Security Checks")
    table.add_column("Name", style="cyan")
    table.add_column("Finding IDs", style="bold")
    table.add_column("Description")

    for check in get_catalogue("full"):
        table.add_row(
            check.name,
            "\n".join(f.value for f in check.finding_ids),
            check.description,
        )

    Console().print(table)


@main.command()
def version() -> None:
    """Display version information."""
    click.echo(f"{TOOL_NAME} {__version__}")


if __name__ == "__main__":
    main()
