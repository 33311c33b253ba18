"""Main CLI entry point using Typer."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..aws.ecr_public import EcrPublicAdmin
from ..cleanup.audit import CleanupAuditStorage
from ..cleanup.orchestrator import CleanupOrchestrator
from ..cleanup.reporter import CleanupReporter
from ..config import Config
from ..errors import AdminApiError, ConfigurationError, QuotaExceededError, ValidationError
from ..models.cleanup_record import CleanupOutcome
from ..models.fixture import FixtureHandle
from ..models.quota_snapshot import QuotaStatus
from ..quota.guard import QuotaGuard
from ..terraform.options import TerraformOptions
from ..utils.logging import setup_logging
from ..validation.identifier import validate_identifier

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="ecrpub-testkit",
    help="ECR Public test kit - fixture quota checks, cleanup and audit",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None


@app.callback()
def main(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    config_file: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to config file (default: ~/.ecrpub-testkit/config.yaml or $ECRPUB_TESTKIT_CONFIG)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """ECR Public test kit - fixture quota checks, cleanup and audit."""
    global config

    try:
        config = Config.load(config_path=config_file)
    except ConfigurationError as e:
        console.print(f"✗ Error: {e}", style="bold red")
        raise typer.Exit(code=1)

    # Override with CLI options
    if profile:
        config.aws_profile = profile

    # Setup logging
    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose)

    # Disable colors if requested
    if no_color:
        console.no_color = True


@app.command()
def version():
    """Show version information."""
    import boto3

    from .. import __version__

    console.print(f"ecrpub-testkit version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"boto3 {boto3.__version__}")


@app.command("check-name")
def check_name(
    name: str = typer.Argument(..., help="Repository name to validate"),
):
    """Validate a repository name without touching AWS.

    Examples:
        ecrpub-testkit check-name terratest-basic-a1b2c3d4
    """
    try:
        validate_identifier(name)
    except ValidationError as e:
        console.print(f"✗ Invalid repository name: {e.reason}", style="bold red")
        raise typer.Exit(code=1)

    console.print(f"✓ '{name}' is a valid repository name", style="green")


@app.command()
def quota():
    """Show public repository usage against the quota thresholds.

    Honors the CI and AWS_SKIP_QUOTA_CHECK signals, like the test suite does.
    """
    try:
        guard = QuotaGuard(config)
        snapshot = guard.check_quota()

        table = Table(title="ECR Public Quota", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("Region", config.region)
        table.add_row("Repositories", "-" if snapshot.skipped else f"{snapshot.current_count:,}")
        table.add_row("Warning threshold", f"{snapshot.warn_threshold:,}")
        table.add_row("Abort threshold", f"{snapshot.error_threshold:,}")

        status = snapshot.status
        style = {
            QuotaStatus.OK: "green",
            QuotaStatus.WARNING: "yellow",
            QuotaStatus.SKIPPED: "dim",
        }.get(status, "red")
        table.add_row("Status", f"[{style}]{status.value}[/{style}]")
        if snapshot.skip_reason:
            table.add_row("Skip reason", snapshot.skip_reason)

        console.print(table)

    except QuotaExceededError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"✗ Error checking quota: {e}", style="bold red")
        logger.exception("Error in quota command")
        raise typer.Exit(code=2)


@app.command()
def cleanup(
    name: str = typer.Argument(..., help="Repository name to clean up"),
    terraform_dir: Optional[Path] = typer.Option(
        None,
        "--terraform-dir",
        "-d",
        help="Terraform directory whose state holds the repository (skips terraform destroy if omitted)",
    ),
    no_audit: bool = typer.Option(False, "--no-audit", help="Do not write a cleanup audit log"),
):
    """Tear down a test repository, falling back to direct API deletion.

    Runs the same tiers as test teardown: terraform destroy, direct delete,
    one retry after a wait, then prints manual remediation steps.

    Examples:
        ecrpub-testkit cleanup terratest-basic-a1b2c3d4 --terraform-dir examples/basic
    """
    try:
        validate_identifier(name)

        options = None
        if terraform_dir is not None:
            if not terraform_dir.is_dir():
                console.print(f"✗ Terraform directory not found: {terraform_dir}", style="bold red")
                raise typer.Exit(code=1)
            options = TerraformOptions(
                terraform_dir=terraform_dir,
                vars={"repository_name": name},
                env_vars={"AWS_DEFAULT_REGION": config.region},
            )

        audit_storage = None if no_audit else CleanupAuditStorage(config.audit_dir)
        orchestrator = CleanupOrchestrator(config, audit_storage=audit_storage)
        record = orchestrator.cleanup(FixtureHandle(identifier=name, region=config.region, options=options))

        CleanupReporter(console).display_record(record)
        if record.manual_required:
            raise typer.Exit(code=1)

    except typer.Exit:
        raise
    except ValidationError as e:
        console.print(f"✗ Invalid repository name: {e.reason}", style="bold red")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"✗ Error during cleanup: {e}", style="bold red")
        logger.exception("Error in cleanup command")
        raise typer.Exit(code=2)


@app.command()
def audit(
    since: Optional[str] = typer.Option(None, "--since", help="Only records started on/after this date (YYYY-MM-DD)"),
    outcome: Optional[str] = typer.Option(
        None,
        "--outcome",
        help="Only records with this outcome (terraform_succeeded, fallback_succeeded, retry_succeeded, manual_required)",
    ),
):
    """List recorded cleanups, e.g. to find repositories needing manual cleanup.

    Examples:
        ecrpub-testkit audit --outcome manual_required
    """
    try:
        since_dt = None
        if since:
            try:
                since_dt = datetime.strptime(since, "%Y-%m-%d")
            except ValueError:
                console.print(f"✗ Invalid date '{since}'. Use YYYY-MM-DD", style="bold red")
                raise typer.Exit(code=1)

        outcome_filter = None
        if outcome:
            try:
                outcome_filter = CleanupOutcome(outcome)
            except ValueError:
                valid = ", ".join(o.value for o in CleanupOutcome)
                console.print(f"✗ Invalid outcome '{outcome}'. Choose from: {valid}", style="bold red")
                raise typer.Exit(code=1)

        storage = CleanupAuditStorage(config.audit_dir)
        records = storage.query_records(since=since_dt, outcome=outcome_filter)
        CleanupReporter(console).display_audit(records)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"✗ Error reading audit logs: {e}", style="bold red")
        logger.exception("Error in audit command")
        raise typer.Exit(code=2)


@app.command()
def orphans(
    prefix: str = typer.Option("terratest-", "--prefix", help="Repository name prefix used by tests"),
):
    """List public repositories whose names match the test prefix.

    Repositories listed here were left behind by interrupted or failed test
    runs and can be removed with `ecrpub-testkit cleanup NAME`.
    """
    try:
        admin = EcrPublicAdmin(aws_profile=config.aws_profile, default_region=config.region)
        names = admin.list_repository_names(prefix=prefix, region=config.region)

        if not names:
            console.print(f"✓ No repositories found with prefix '{prefix}'", style="green")
            return

        console.print(
            Panel(
                "\n".join(names),
                title=f"[bold yellow]{len(names)} possible orphaned repositories[/bold yellow]",
                border_style="yellow",
            )
        )

    except AdminApiError as e:
        console.print(f"✗ Error listing repositories: {e}", style="bold red")
        raise typer.Exit(code=2)


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
