"""logsync CLI.

Offline tooling around the sync engine.

Usage:
    logsync validate specs/logging.yaml
    logsync plan specs/logging.yaml --observed snapshot.yaml
    logsync verify specs/logging.yaml --observed snapshot.yaml
    logsync info
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import click

from .config import Config, ConfigurationError, SyncMode
from .differ import Operation, OperationKind, index_desired
from .errors import ConvergenceMismatch, SyncError
from .main import EXIT_ERROR, run_reconciler, setup_logging
from .provenance import LOGSYNC_VERSION
from .snapshot import SnapshotClient
from .spec_loader import SpecLoadError, load_snapshot, load_spec
from .verifier import verify

_OPERATION_MARKERS = {
    OperationKind.DELETE: ("-", "red"),
    OperationKind.CREATE: ("+", "green"),
    OperationKind.UPDATE: ("~", "yellow"),
}

_PATH = click.Path(exists=True, dir_okay=False, path_type=Path)


def _echo_operation(operation: Operation) -> None:
    marker, color = _OPERATION_MARKERS[operation.kind]
    line = f"  {marker} {operation.kind.value} {operation.name}"
    changed = getattr(operation, "changed_fields", ())
    if changed:
        line += f" ({', '.join(changed)})"
    click.secho(line, fg=color)


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version=LOGSYNC_VERSION, prog_name="logsync")
@click.option("--json-logs/--text-logs", default=False, help="Log format (default: text)")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(json_logs: bool, verbose: bool) -> None:
    """logsync: converge logging endpoints on a versioned service.

    \b
    Quick Start:
        logsync validate specs/logging.yaml
        logsync plan specs/logging.yaml --observed snapshot.yaml
    """
    setup_logging(json_output=json_logs, level=logging.DEBUG if verbose else logging.WARNING)


@cli.command()
@click.argument("spec_path", type=_PATH)
def validate(spec_path: Path) -> None:
    """Validate a desired-state spec file."""
    try:
        spec = load_spec(spec_path)
        index_desired(spec.endpoints)
    except (SpecLoadError, SyncError) as e:
        raise click.ClickException(str(e)) from e

    click.secho(
        f"✓ {spec_path}: {len(spec.endpoints)} endpoint(s) for service {spec.service_id}",
        fg="green",
    )


@cli.command()
@click.argument("spec_path", type=_PATH)
@click.option(
    "--observed",
    "-o",
    "snapshot_path",
    type=_PATH,
    required=True,
    help="Snapshot of the service's active version",
)
@click.option("--fail-on-drift", is_flag=True, help="Exit with code 3 when drift is found")
def plan(spec_path: Path, snapshot_path: Path, fail_on_drift: bool) -> None:
    """Show the operations needed to converge a snapshot to the spec."""
    try:
        snapshot = load_snapshot(snapshot_path)
        config = Config(
            service_id=snapshot.service_id,
            spec_path=spec_path,
            mode=SyncMode.OBSERVE,
            enable_audit_logging=False,
        )
    except (SpecLoadError, ConfigurationError) as e:
        raise click.ClickException(str(e)) from e

    code, result = run_reconciler(config, SnapshotClient(snapshot), fail_on_drift=fail_on_drift)
    if result.error is not None:
        raise click.ClickException(str(result.error))

    click.echo(f"Service {result.service_id}, active version {result.version}")
    if not result.operations:
        click.secho("✓ No changes. Endpoints are converged.", fg="green")
    else:
        for operation in result.operations:
            _echo_operation(operation)
        click.echo(f"{len(result.operations)} operation(s) needed.")

    sys.exit(code)


@cli.command("verify")
@click.argument("spec_path", type=_PATH)
@click.option(
    "--observed",
    "-o",
    "snapshot_path",
    type=_PATH,
    required=True,
    help="Snapshot of the service version to verify",
)
@click.option(
    "--version", "version", type=int, default=None, help="Version to verify (default: snapshot)"
)
def verify_command(spec_path: Path, snapshot_path: Path, version: int | None) -> None:
    """Verify that a snapshot matches the spec exactly."""
    try:
        spec = load_spec(spec_path)
        snapshot = load_snapshot(snapshot_path)
        target = version if version is not None else snapshot.version
        verify(spec.service_id, target, spec.endpoints, SnapshotClient(snapshot))
    except ConvergenceMismatch as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        for operation in e.operations:
            _echo_operation(operation)
        sys.exit(EXIT_ERROR)
    except (SpecLoadError, SyncError) as e:
        raise click.ClickException(str(e)) from e

    click.secho(f"✓ Version {target} matches {spec_path}", fg="green")


@cli.command()
def info() -> None:
    """Show logsync version and environment configuration."""
    click.echo("logsync")
    click.echo("=" * 40)
    click.echo(f"Version: {LOGSYNC_VERSION}")

    click.echo("\nEnvironment:")
    for key in (
        "SERVICE_ID",
        "SPEC_FILE",
        "SYNC_MODE",
        "VERIFY_AFTER_APPLY",
        "MAX_OPERATIONS_PER_SYNC",
        "ENABLE_AUDIT_LOGGING",
    ):
        click.echo(f"  {key}: {os.environ.get(key, '(unset)')}")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
