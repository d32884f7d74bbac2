"""
Snapshot management commands.
"""

from typing import List, Optional

import typer

from ebs_csi_cloud.cli.commands.volume import parse_tags
from ebs_csi_cloud.cli.common import DEFAULT_TIMEOUT, get_cloud, new_context
from ebs_csi_cloud.cloud.exceptions import NotFound
from ebs_csi_cloud.cloud.models import SNAPSHOT_NAME_TAG_KEY, Snapshot, SnapshotOptions

app = typer.Typer(help="Snapshot management commands")


def _format(snapshot: Snapshot) -> str:
    created = snapshot.creation_time.isoformat() if snapshot.creation_time else "-"
    return (
        f"{snapshot.snapshot_id} volume={snapshot.source_volume_id} size={snapshot.size}B "
        f"ready={snapshot.ready_to_use} created={created}"
    )


@app.command()
def create(
    volume_id: str = typer.Argument(..., help="Source volume ID"),
    name: Optional[str] = typer.Option(None, "--name", help="Snapshot name (stored in the CSIVolumeSnapshotName tag)"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", help="Extra tag as key=value, repeatable"),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region (default: $AWS_REGION)"),
    timeout: int = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Timeout in seconds"),
):
    """
    Snapshot a volume.
    """
    try:
        tags = parse_tags(tag)
        if name:
            tags[SNAPSHOT_NAME_TAG_KEY] = name

        typer.echo(f"Creating snapshot of volume: {volume_id}")
        snapshot = get_cloud(region).create_snapshot(new_context(timeout), volume_id, SnapshotOptions(tags=tags))
        typer.echo(f"Snapshot created: {_format(snapshot)}")
    except typer.BadParameter:
        raise
    except Exception as e:
        typer.echo(f"Error creating snapshot: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def delete(
    snapshot_id: str = typer.Argument(..., help="Snapshot ID"),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region (default: $AWS_REGION)"),
    timeout: int = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Timeout in seconds"),
):
    """
    Delete a snapshot. Deleting a snapshot that is already gone is not an error.
    """
    try:
        typer.echo(f"Deleting snapshot: {snapshot_id}")
        get_cloud(region).delete_snapshot(new_context(timeout), snapshot_id)
        typer.echo(f"Snapshot {snapshot_id} deleted successfully")
    except NotFound:
        typer.echo(f"Snapshot {snapshot_id} not found, nothing to delete")
    except Exception as e:
        typer.echo(f"Error deleting snapshot: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def get(
    snapshot_id: Optional[str] = typer.Argument(None, help="Snapshot ID"),
    name: Optional[str] = typer.Option(None, "--name", help="Look up by name instead of ID"),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region (default: $AWS_REGION)"),
    timeout: int = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Timeout in seconds"),
):
    """
    Show a snapshot.
    """
    try:
        cloud = get_cloud(region)
        ctx = new_context(timeout)
        if name:
            snapshot = cloud.get_snapshot_by_name(ctx, name)
        elif snapshot_id:
            snapshot = cloud.get_snapshot_by_id(ctx, snapshot_id)
        else:
            typer.echo("Error: either a snapshot ID or --name is required", err=True)
            raise typer.Exit(2)
        typer.echo(_format(snapshot))
    except typer.Exit:
        raise
    except Exception as e:
        typer.echo(f"Error getting snapshot: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def list(
    volume_id: str = typer.Option("", "--volume-id", help="Only snapshots of this volume"),
    max_results: int = typer.Option(0, "--max-results", help="Page size, 0 or at least 5"),
    next_token: str = typer.Option("", "--next-token", help="Token from a previous page"),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region (default: $AWS_REGION)"),
    timeout: int = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Timeout in seconds"),
):
    """
    List one page of snapshots.
    """
    try:
        response = get_cloud(region).list_snapshots(new_context(timeout), volume_id, max_results, next_token)
        for snapshot in response.snapshots:
            typer.echo(_format(snapshot))
        if response.next_token:
            typer.echo(f"Next token: {response.next_token}")
    except NotFound:
        typer.echo("No snapshots found")
    except Exception as e:
        typer.echo(f"Error listing snapshots: {e}", err=True)
        raise typer.Exit(1)
