"""
Volume management commands.
"""

from typing import List, Optional

import typer

from ebs_csi_cloud.cli.common import DEFAULT_TIMEOUT, get_cloud, new_context
from ebs_csi_cloud.cloud.exceptions import NotFound
from ebs_csi_cloud.cloud.models import GiB, DiskOptions

app = typer.Typer(help="Volume management commands")


def parse_tags(tags: Optional[List[str]]) -> dict:
    """Parse ``key=value`` pairs; later keys win."""
    result = {}
    for tag in tags or []:
        key, sep, value = tag.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Tag must be key=value, got {tag!r}")
        result[key] = value
    return result


@app.command()
def create(
    name: str = typer.Argument(..., help="Volume name (stored in the CSIVolumeName tag)"),
    size: int = typer.Option(..., "--size", help="Size in GiB"),
    volume_type: str = typer.Option("", "--type", help="Volume type: io1, io2, gp2, st2 or standard (default: gp2)"),
    iops_per_gb: int = typer.Option(0, "--iops-per-gb", help="IOPS per GiB for io1/io2 volumes"),
    zone: str = typer.Option("", "--zone", help="Availability zone (default: any zone of the region)"),
    encrypted: bool = typer.Option(False, "--encrypted/--no-encrypted", help="Encrypt the volume"),
    kms_key_id: str = typer.Option("", "--kms-key-id", help="KMS key ARN, implies --encrypted"),
    snapshot_id: str = typer.Option("", "--snapshot-id", help="Restore from this snapshot"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", help="Extra tag as key=value, repeatable"),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region (default: $AWS_REGION)"),
    timeout: int = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Timeout in seconds"),
):
    """
    Create a volume, or report the existing one with the same name and size.
    """
    try:
        options = DiskOptions(
            capacity_bytes=size * GiB,
            tags=parse_tags(tag),
            volume_type=volume_type,
            iops_per_gb=iops_per_gb,
            availability_zone=zone,
            encrypted=encrypted,
            kms_key_id=kms_key_id,
            snapshot_id=snapshot_id,
        )
        typer.echo(f"Creating volume: {name}")

        cloud = get_cloud(region)
        ctx = new_context(timeout)
        try:
            disk = cloud.get_disk_by_name(ctx, name, options.capacity_bytes)
            typer.echo(f"  Volume already exists: {disk.volume_id}")
        except NotFound:
            disk = cloud.create_disk(ctx, name, options)

        typer.echo(f"Volume {name} ready: {disk.volume_id} size={disk.capacity_gib}GiB zone={disk.availability_zone}")

    except typer.BadParameter:
        raise
    except Exception as e:
        typer.echo(f"Error creating volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def delete(
    volume_id: str = typer.Argument(..., help="Volume ID"),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region (default: $AWS_REGION)"),
    timeout: int = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Timeout in seconds"),
):
    """
    Delete a volume. Deleting a volume that is already gone is not an error.
    """
    try:
        typer.echo(f"Deleting volume: {volume_id}")
        get_cloud(region).delete_disk(new_context(timeout), volume_id)
        typer.echo(f"Volume {volume_id} deleted successfully")
    except NotFound:
        typer.echo(f"Volume {volume_id} not found, nothing to delete")
    except Exception as e:
        typer.echo(f"Error deleting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def get(
    volume_id: Optional[str] = typer.Argument(None, help="Volume ID"),
    name: Optional[str] = typer.Option(None, "--name", help="Look up by name instead of ID"),
    size: int = typer.Option(0, "--size", help="Expected size in GiB (required with --name)"),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region (default: $AWS_REGION)"),
    timeout: int = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Timeout in seconds"),
):
    """
    Show a volume.
    """
    try:
        cloud = get_cloud(region)
        ctx = new_context(timeout)
        if name:
            disk = cloud.get_disk_by_name(ctx, name, size * GiB)
        elif volume_id:
            disk = cloud.get_disk_by_id(ctx, volume_id)
        else:
            typer.echo("Error: either a volume ID or --name is required", err=True)
            raise typer.Exit(2)

        typer.echo(
            f"{disk.volume_id} size={disk.capacity_gib}GiB zone={disk.availability_zone} "
            f"snapshot={disk.snapshot_id or '-'}"
        )
    except typer.Exit:
        raise
    except Exception as e:
        typer.echo(f"Error getting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def resize(
    volume_id: str = typer.Argument(..., help="Volume ID"),
    new_size: int = typer.Option(..., "--new-size", help="New size in GiB"),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region (default: $AWS_REGION)"),
    timeout: int = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Timeout in seconds"),
):
    """
    Grow a volume. Volumes never shrink.
    """
    try:
        typer.echo(f"Resizing volume: {volume_id}")
        size_gib = get_cloud(region).resize_disk(new_context(timeout), volume_id, new_size * GiB)
        typer.echo(f"Volume {volume_id} size is now {size_gib} GiB")
    except Exception as e:
        typer.echo(f"Error resizing volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def attach(
    volume_id: str = typer.Argument(..., help="Volume ID"),
    node: str = typer.Option(..., "--node", help="Instance ID"),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region (default: $AWS_REGION)"),
    timeout: int = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Timeout in seconds"),
):
    """
    Attach a volume to an instance and print the device path.
    """
    try:
        typer.echo(f"Attaching volume: {volume_id} to {node}")
        path = get_cloud(region).attach_disk(new_context(timeout), volume_id, node)
        typer.echo(f"Volume {volume_id} attached at {path}")
    except Exception as e:
        typer.echo(f"Error attaching volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def detach(
    volume_id: str = typer.Argument(..., help="Volume ID"),
    node: str = typer.Option(..., "--node", help="Instance ID"),
    region: Optional[str] = typer.Option(None, "--region", help="AWS region (default: $AWS_REGION)"),
    timeout: int = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="Timeout in seconds"),
):
    """
    Detach a volume from an instance. Detaching a volume that is not attached is not an error.
    """
    try:
        typer.echo(f"Detaching volume: {volume_id} from {node}")
        get_cloud(region).detach_disk(new_context(timeout), volume_id, node)
        typer.echo(f"Volume {volume_id} detached successfully")
    except NotFound:
        typer.echo(f"Volume {volume_id} is not attached to {node}")
    except Exception as e:
        typer.echo(f"Error detaching volume: {e}", err=True)
        raise typer.Exit(1)
