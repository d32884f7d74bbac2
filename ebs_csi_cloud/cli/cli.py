#!/usr/bin/env python3
"""
Main CLI entry point using Typer.
"""

import sys

import typer

from ebs_csi_cloud.cli.commands import snapshot, volume
from ebs_csi_cloud.cli.common import setup_logging

app = typer.Typer(
    name="ebs-csi-cloud",
    help="EBS volume and snapshot troubleshooting tool",
    add_completion=False,
)

# Add command groups
app.add_typer(volume.app, name="volume", help="Volume management commands")
app.add_typer(snapshot.app, name="snapshot", help="Snapshot management commands")


@app.callback()
def configure(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")):
    """Set up logging before any command runs."""
    setup_logging(debug)


def main() -> int:
    """Main entry point."""
    try:
        app()
        return 0
    except KeyboardInterrupt:
        typer.echo("\nOperation cancelled by user", err=True)
        return 130
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
