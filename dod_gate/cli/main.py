"""Main CLI Module - Command-line interface for the Definition of Done gate."""

import dataclasses
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from .. import __version__
from ..checks import create_registry
from ..config import list_builtin_profiles, load_builtin_profile, load_profile
from ..core.check import CheckCategory, ValidationMode
from ..core.errors import BundleWriteError, ConfigurationError
from ..core.profile import Profile
from ..core.receipt import ReceiptBuilder
from ..reporters import get_reporter
from ..utils.logging import configure_logging
from ..validator import DodValidator, ValidationResult

console = Console()

EXIT_READY = 0
EXIT_NOT_READY = 1
EXIT_CONFIG_ERROR = 2
EXIT_RUN_FAILURE = 3

DEFAULT_OUTPUT_DIRNAME = "dod_reports"


def get_score_color(score: float) -> str:
    """Get color for score value."""
    if score >= 80:
        return "green"
    elif score >= 70:
        return "yellow"
    elif score >= 60:
        return "orange1"
    else:
        return "red"


def _resolve_profile(profile_name: str, profile_file: Optional[str]) -> Profile:
    if profile_file:
        return load_profile(profile_file)
    return load_builtin_profile(profile_name)


@click.group()
@click.version_option(version=__version__, prog_name="dod")
@click.option("--log-level", envvar="DOD_LOG_LEVEL", default="WARNING",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Logging level (env: DOD_LOG_LEVEL)")
@click.option("--log-json", is_flag=True, help="Emit logs as JSON lines")
@click.pass_context
def cli(ctx: click.Context, log_level: str, log_json: bool):
    """Definition of Done gate - Score a workspace and issue a verifiable receipt."""
    ctx.ensure_object(dict)
    configure_logging(log_level, structured=log_json)


@cli.command("validate")
@click.argument("path", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--profile", "-p", "profile_name", envvar="DOD_PROFILE", default="default",
              show_default=True, help="Bundled profile name (env: DOD_PROFILE)")
@click.option("--profile-file", type=click.Path(exists=True, dir_okay=False),
              help="Profile YAML file (overrides --profile)")
@click.option("--mode", type=click.Choice([m.value for m in ValidationMode]), default="fast",
              show_default=True, help="Validation mode")
@click.option("--output", "-o", envvar="DOD_OUTPUT_DIR", type=click.Path(file_okay=False),
              help="Output directory for receipts (env: DOD_OUTPUT_DIR, default: PATH/dod_reports)")
@click.option("--format", "-f", "formats", multiple=True, type=click.Choice(["json", "markdown"]),
              help="Extra report formats to write next to the receipt")
@click.option("--fail-fast/--no-fail-fast", default=None,
              help="Override the profile's fail-fast setting")
@click.option("--timeout", type=float, help="Per-check timeout in seconds, replacing the profile's")
@click.option("--no-save", is_flag=True, help="Do not write receipt or reports")
def validate(
    path: str,
    profile_name: str,
    profile_file: Optional[str],
    mode: str,
    output: Optional[str],
    formats: tuple,
    fail_fast: Optional[bool],
    timeout: Optional[float],
    no_save: bool,
):
    """Validate a workspace against a profile.

    PATH is the workspace to validate (default: current directory).
    """
    target_path = Path(path).resolve()
    output_dir = Path(output) if output else target_path / DEFAULT_OUTPUT_DIRNAME

    try:
        profile = _resolve_profile(profile_name, profile_file)
        if fail_fast is not None:
            profile = dataclasses.replace(
                profile, thresholds=dataclasses.replace(profile.thresholds, fail_fast=fail_fast)
            )
        if timeout is not None and timeout <= 0:
            raise ConfigurationError(f"--timeout must be positive, got {timeout:g}")
        validator = DodValidator(create_registry(), profile)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(EXIT_CONFIG_ERROR)

    console.print(Panel.fit(
        f"[bold blue]Definition of Done Gate[/bold blue]\n"
        f"Workspace: [cyan]{target_path}[/cyan]\n"
        f"Profile: [cyan]{profile.name}[/cyan]  Mode: [cyan]{mode}[/cyan]",
        title="DoD Validate",
        border_style="blue",
    ))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("[cyan]Running checks...", total=len(profile.active_checks))

        def on_progress(completed: int, total: int, check_id: str) -> None:
            progress.update(task, completed=completed, total=total,
                            description=f"[cyan]Finished {check_id}")

        try:
            result = validator.validate(
                target_path,
                mode=ValidationMode(mode),
                timeout_override=timeout,
                progress_callback=on_progress,
            )
        except ConfigurationError as e:
            console.print(f"[red]Configuration error: {e}[/red]")
            sys.exit(EXIT_CONFIG_ERROR)

    _display_results(result)

    if not no_save:
        try:
            artifacts = validator.save(result, output_dir)
            for format_name in formats:
                if format_name == "markdown":
                    continue  # report.md is always written
                reporter = get_reporter(format_name, str(artifacts.directory))
                reporter.save(result.report_data(), filename=f"report.{reporter.extension}")
        except BundleWriteError as e:
            console.print(f"[red]Run failed: {e}[/red]")
            sys.exit(EXIT_RUN_FAILURE)
        except OSError as e:
            console.print(f"[red]Run failed: could not write report: {e}[/red]")
            sys.exit(EXIT_RUN_FAILURE)

        console.print(f"\n[bold]Receipt:[/bold] {artifacts.receipt_path}")
        console.print(f"[bold]Evidence:[/bold] {artifacts.bundle_path}")
        if artifacts.report_path:
            console.print(f"[bold]Report:[/bold] {artifacts.report_path}")

    sys.exit(EXIT_READY if result.is_ready else EXIT_NOT_READY)


@cli.command("verify")
@click.argument("receipt", type=click.Path(exists=True))
def verify(receipt: str):
    """Verify a receipt's content hash and evidence bundle.

    RECEIPT is a receipt.json file or the run directory holding one.
    """
    builder = ReceiptBuilder()
    try:
        loaded = builder.load(receipt)
    except (OSError, ValueError) as e:
        console.print(f"[red]Cannot read receipt: {e}[/red]")
        sys.exit(1)

    receipt_path = Path(receipt)
    run_dir = receipt_path if receipt_path.is_dir() else receipt_path.parent
    valid = builder.verify(loaded)

    table = Table(title=f"Receipt {loaded.content_hash[:16]}")
    table.add_column("Check")
    table.add_column("Result")
    table.add_row("Content hash", "[green]✓ matches[/green]" if valid else "[red]✗ mismatch[/red]")

    ref = loaded.evidence_bundle_ref
    if ref:
        bundle_path = run_dir / ref.get("path", "")
        if bundle_path.is_file():
            bundle_ok = builder.verify_bundle(loaded, bundle_path)
            valid = valid and bundle_ok
            table.add_row(
                "Evidence bundle",
                "[green]✓ matches[/green]" if bundle_ok else "[red]✗ mismatch[/red]",
            )
        else:
            table.add_row("Evidence bundle", "[yellow]not found[/yellow]")

    verdict_color = "green" if loaded.is_ready else "red"
    table.add_row("Verdict", f"[{verdict_color}]{loaded.verdict}[/{verdict_color}]")
    table.add_row("Score", f"{loaded.readiness_score:.1f}")
    table.add_row("Profile", f"{loaded.profile_name} ({loaded.mode})")
    console.print(table)

    sys.exit(0 if valid else 1)


@cli.command("list-checks")
@click.option("--category", "-c", type=click.Choice([c.value for c in CheckCategory]),
              help="Only show checks of this category")
def list_checks(category: Optional[str]):
    """List the built-in checks."""
    registry = create_registry()
    checks = registry.by_category(CheckCategory(category)) if category else iter(registry)

    table = Table(title="Built-in Checks")
    table.add_column("ID", style="cyan")
    table.add_column("Category")
    table.add_column("Severity")
    table.add_column("Depends on")
    table.add_column("Description")

    for check in checks:
        table.add_row(
            check.id,
            check.category.value,
            f"[{check.severity.color}]{check.severity.value}[/{check.severity.color}]",
            ", ".join(sorted(check.dependencies)) or "-",
            check.description,
        )

    console.print(table)


@cli.command("profiles")
def profiles():
    """List the bundled profiles."""
    table = Table(title="Bundled Profiles")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Min Score", justify="right")
    table.add_column("Max Warnings", justify="right")
    table.add_column("Tests Must Pass")
    table.add_column("Fail-fast")
    table.add_column("Checks", justify="right")

    for name in list_builtin_profiles():
        try:
            profile = load_builtin_profile(name)
        except ConfigurationError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(EXIT_CONFIG_ERROR)
        thresholds = profile.thresholds
        table.add_row(
            profile.name,
            profile.description,
            f"{thresholds.min_readiness_score:g}",
            str(thresholds.max_warnings),
            "yes" if thresholds.require_all_tests_pass else "no",
            "yes" if thresholds.fail_fast else "no",
            f"{len(profile.required_checks)} required / {len(profile.optional_checks)} optional",
        )

    console.print(table)


def _display_results(result: ValidationResult):
    """Display a run in the terminal."""
    scorecard = result.scorecard
    score_color = get_score_color(scorecard.readiness_score)
    verdict_color = scorecard.verdict.color

    console.print(Panel.fit(
        f"[bold {score_color}]{scorecard.readiness_score:.1f}[/bold {score_color}] / 100\n"
        f"Grade: [bold]{scorecard.grade}[/bold]\n"
        f"Verdict: [bold {verdict_color}]{scorecard.verdict.label}[/bold {verdict_color}]",
        title="Readiness",
        border_style=verdict_color,
    ))

    category_table = Table(title="Categories")
    category_table.add_column("Category")
    category_table.add_column("Weight", justify="right")
    category_table.add_column("Score", justify="right")
    category_table.add_column("Grade", justify="center")
    category_table.add_column("Contribution", justify="right")
    for cs in scorecard.category_scores:
        color = get_score_color(cs.score)
        category_table.add_row(
            cs.category.title,
            f"{cs.weight * 100:.1f}%",
            f"[{color}]{cs.score:.1f}[/{color}]",
            cs.grade,
            f"{cs.weighted_contribution:.1f}",
        )
    console.print(category_table)

    check_table = Table(title="Checks")
    check_table.add_column("ID", style="cyan")
    check_table.add_column("Status")
    check_table.add_column("Severity")
    check_table.add_column("Time", justify="right")
    check_table.add_column("Message")
    for check_result in result.check_results:
        status = check_result.status
        check_table.add_row(
            check_result.id,
            f"[{status.color}]{status.value.upper()}[/{status.color}]",
            check_result.severity.value,
            f"{check_result.duration:.2f}s",
            check_result.message,
        )
    console.print(check_table)

    metrics = result.metrics
    metrics_line = (
        f"Total {metrics.total_duration_ms / 1000:.2f}s, "
        f"average {metrics.average_duration_ms / 1000:.2f}s per check, "
        f"success rate {metrics.success_rate * 100:.1f}%"
    )
    if metrics.slowest_check:
        check_id, duration = metrics.slowest_check
        metrics_line += f", slowest {check_id} ({duration / 1000:.2f}s)"
    console.print(f"[dim]{metrics_line}[/dim]")

    if scorecard.disqualifiers:
        console.print("\n[bold red]Disqualifiers:[/bold red]")
        for reason in scorecard.disqualifiers:
            console.print(f"  • {reason}")

    if scorecard.warning_budget_exceeded:
        console.print(
            f"\n[yellow]{scorecard.warnings_count} warnings exceed the profile budget "
            f"of {scorecard.max_warnings}[/yellow]"
        )
    for warning in result.receipt.warnings:
        console.print(f"[yellow]{warning}[/yellow]")
    if result.execution.aborted:
        console.print(f"[yellow]Fail-fast stopped the run after {result.execution.aborted_by}[/yellow]")

    console.print(f"\nStatus: [{verdict_color}]{scorecard.status}[/{verdict_color}]")


def main():
    """Entry point for the CLI."""
    load_dotenv()
    cli(obj={})


if __name__ == "__main__":
    main()
