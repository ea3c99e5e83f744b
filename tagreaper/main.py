"""
TagReaper CLI - Dependency-Aware AWS Resource Deletion

Main entry point for the command-line interface.
"""

import json
import sys
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from . import __version__
from .arn import bucket_arns, read_arns
from .core.aws_client import AWSClient
from .core.config import DeleteConfig
from .core.exceptions import AWSClientError, TagReaperError
from .core.logging import read_log_entries, setup_logging, setup_request_logger
from .core.resources import ResourceIdentifierSet, count_names
from .core.retry import RetryPolicy
from .orchestrator import DeletionOrchestrator
from .reporters.cli_reporter import CLIReporter
from .reporters.json_reporter import JSONReporter


console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="tagreaper")
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write application logs to this file",
)
def cli(debug: bool, log_file: Optional[str]):
    """
    TagReaper: Dependency-Aware AWS Resource Deletion

    Deletes a group of AWS resources, identified by ARN, together with the
    resources that depend on them, in an order AWS accepts.

    Every option can also be set through a TAGREAPER_* environment variable,
    e.g. TAGREAPER_DELETE_REGION.
    """
    setup_logging(level="DEBUG" if debug else "WARNING", log_file=log_file)


@cli.command("delete")
@click.argument("input_file", type=click.File("r"), default="-")
@click.option(
    "--region",
    "-r",
    default="us-east-1",
    help="AWS region to delete from (default: us-east-1)",
)
@click.option(
    "--profile",
    "-p",
    default=None,
    help="AWS profile name from ~/.aws/credentials",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Preview what would be deleted without actually deleting",
)
@click.option(
    "--ignore-errors",
    "-e",
    is_flag=True,
    default=False,
    help="Continue past failed deletions and report them as JSON lines",
)
@click.option(
    "--all-deps",
    is_flag=True,
    default=False,
    help="Also delete resources discovered from the input (subnets of a VPC, ...)",
)
@click.option(
    "--backoff",
    type=click.FloatRange(min=0),
    default=0.0,
    help="Seconds to wait after every delete call (default: 0)",
)
@click.option(
    "--max-retries",
    type=click.IntRange(min=0),
    default=8,
    help="Retries for throttled or blocked calls (default: 8)",
)
@click.option(
    "--base-delay",
    type=click.FloatRange(min=0),
    default=1.0,
    help="Initial retry delay in seconds, doubled per attempt (default: 1.0)",
)
@click.option(
    "--max-delay",
    type=click.FloatRange(min=0),
    default=30.0,
    help="Upper bound for a single retry delay in seconds (default: 30)",
)
@click.option(
    "--wait-timeout",
    type=click.FloatRange(min=0),
    default=300.0,
    help="Seconds to wait for instances, NAT gateways, ... to be gone (default: 300)",
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for the JSON request log (default: stderr)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the deletion report to this JSON file",
)
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    default=False,
    help="Do not ask for confirmation",
)
def delete_resources(
    input_file,
    region: str,
    profile: Optional[str],
    dry_run: bool,
    ignore_errors: bool,
    all_deps: bool,
    backoff: float,
    max_retries: int,
    base_delay: float,
    max_delay: float,
    wait_timeout: float,
    log_dir: Optional[str],
    output: Optional[str],
    yes: bool,
):
    """
    Delete the resources named by the ARNs in INPUT_FILE (default: stdin).

    INPUT_FILE holds {"ARNs": [...]}, a JSON list of ARNs, or one ARN per
    line. Unsupported ARNs are skipped with a warning.

    SAFETY FEATURES:
    - Dry-run mode (--dry-run): Preview without deleting
    - Confirmation prompt: Asks before deleting unless --yes

    Examples:

        # Preview what would be deleted, dependents included (safe)
        tagreaper delete arns.json --all-deps --dry-run

        # Delete, continuing past failures, logging requests to ./logs
        tagreaper delete arns.json -e --log-dir ./logs

        # Read ARNs from another command
        some-tag-query | tagreaper delete --yes
    """
    try:
        try:
            resources = bucket_arns(read_arns(input_file.read()))
        except ValueError as e:
            console.print(f"\n[red bold]Invalid input:[/red bold] {str(e)}")
            sys.exit(1)

        if not resources:
            console.print("\n[green]No supported ARNs in input. Nothing to delete.[/green]")
            return

        # Validate credentials first
        try:
            aws_client = AWSClient(region=region, profile=profile)
            aws_client.validate_credentials()
        except AWSClientError as e:
            console.print(f"\n[red bold]Authentication Error:[/red bold] {str(e)}")
            sys.exit(1)

        if dry_run:
            console.print(
                Panel(
                    "[yellow bold]DRY-RUN MODE[/yellow bold]\n"
                    "No resources will actually be deleted.",
                    border_style="yellow",
                )
            )
        elif yes:
            console.print(
                Panel(
                    "[red bold]FORCE MODE[/red bold]\n"
                    "Resources will be deleted WITHOUT confirmation!",
                    border_style="red",
                )
            )

        console.print(f"\n[bold]Input: {count_names(resources)} resources[/bold]\n")
        _print_input_table(resources)

        if not dry_run and not yes:
            console.print()
            scope = " and everything that depends on them" if all_deps else ""
            confirmed = Confirm.ask(
                f"[yellow]Delete these resources{scope}?[/yellow]",
                default=False,
            )
            if not confirmed:
                console.print("\n[yellow]Deletion cancelled by user.[/yellow]")
                return

        request_logger, log_path = setup_request_logger(log_dir)
        config = DeleteConfig(
            dry_run=dry_run,
            ignore_errors=ignore_errors,
            backoff_time=backoff,
            retry_policy=RetryPolicy(
                max_retries=max_retries, base_delay=base_delay, max_delay=max_delay
            ),
            wait_timeout=wait_timeout,
            console=console,
            request_logger=request_logger,
        )

        console.print(f"\n[bold]{'Simulating' if dry_run else 'Deleting'} resources...[/bold]\n")
        orchestrator = DeletionOrchestrator(aws_client)
        report = orchestrator.run(resources, config, expand=all_deps)

        CLIReporter(console=console).report(report)

        if output:
            filepath = JSONReporter(output_path=output).report(report)
            console.print(f"[dim]Report saved to: {filepath}[/dim]")
        if log_path:
            console.print(f"[dim]Request log: {log_path}[/dim]")

        if not dry_run:
            deleted = report.deleted_arns(region, aws_client.get_account_id())
            click.echo(json.dumps({"DeletedARNs": deleted}, indent=1))

        if report.aborted:
            sys.exit(1)

    except TagReaperError as e:
        console.print(f"\n[red bold]Error:[/red bold] {str(e)}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Deletion cancelled by user.[/yellow]")
        sys.exit(130)


def _print_input_table(resources: ResourceIdentifierSet) -> None:
    """Print the number of input resources per type."""
    table = Table(show_lines=False)
    table.add_column("Resource Type", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Names", style="dim", max_width=60)

    for resource_type, names in resources.items():
        preview = ", ".join(names[:3])
        if len(names) > 3:
            preview += f", ... ({len(names)} total)"
        table.add_row(resource_type.value, str(len(names)), preview)

    console.print(table)


@cli.command("report")
@click.argument("log_file", type=click.File("r"))
def report_log(log_file):
    """
    Summarise the failed deletions recorded in a request log.

    LOG_FILE is a log written by 'tagreaper delete --log-dir'.
    """
    try:
        CLIReporter(console=console).report_log_entries(read_log_entries(log_file))
    except ValueError as e:
        console.print(f"\n[red bold]Invalid log file:[/red bold] {str(e)}")
        sys.exit(1)


@cli.command("validate")
@click.option(
    "--profile",
    "-p",
    default=None,
    help="AWS profile name from ~/.aws/credentials",
)
@click.option(
    "--region",
    "-r",
    default="us-east-1",
    help="Region the deletion would run in",
)
def validate_credentials(profile: Optional[str], region: str):
    """Check the credentials a delete run would use, without deleting anything."""
    aws_client = AWSClient(region=region, profile=profile)
    try:
        aws_client.validate_credentials()
    except AWSClientError as e:
        console.print(f"\n[red bold]Credentials rejected:[/red bold] {e}")
        sys.exit(1)

    console.print(f"\n[green bold]Ready to delete in {region}[/green bold]")
    console.print(f"  Account ID: {aws_client.get_account_id()}")
    console.print(f"  Profile: {profile or '(default chain)'}")


def main():
    """Main entry point."""
    cli(auto_envvar_prefix="TAGREAPER")


if __name__ == "__main__":
    main()
