"""Instance housekeeping commands: terminate, preflight, zones."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from botocore.exceptions import BotoCoreError, ClientError
from rich.table import Table

from ..config import load_config
from ..errors import PipelaunchError
from ..orchestrator import Orchestrator
from ..preflight import run_preflight
from ..zones import UNAVAILABLE, ZONE_AMI_TABLE
from ._common import console, fail, make_provider


def register_instance_commands(main: click.Group) -> None:
    """Register terminate, preflight and zones."""

    @main.command("terminate")
    @click.argument("instance_ids", nargs=-1, required=True)
    @click.option("--zone", "-z", default=None, help="Availability zone the instances run in.")
    @click.option("--config-file", default=None, type=click.Path(), help="pipelaunch settings file.")
    def terminate(instance_ids: tuple[str, ...], zone: Optional[str], config_file: Optional[str]):
        """Terminate instances and wait until they are gone.

        Examples:

            pipelaunch terminate i-0abc123def4567890
        """
        try:
            settings = load_config(Path(config_file).expanduser() if config_file else None)
            provider = make_provider(zone or settings.default_zone)
            Orchestrator(provider, config=settings).terminate(list(instance_ids))
        except (PipelaunchError, BotoCoreError, ClientError, OSError, ValueError) as exc:
            fail(exc)
        console.print(f"[green]Terminated {' '.join(instance_ids)}[/]")

    @main.command("preflight")
    @click.option("--zone", "-z", default=None, help="Availability zone to check.")
    @click.option("--manual", is_flag=True, help="Check for a manual-mode run.")
    def preflight(zone: Optional[str], manual: bool):
        """Check local tools and look for instances left running.

        Never blocks a run; shown here for a quick look before launching.
        """
        settings = load_config()
        try:
            result = run_preflight(make_provider(zone or settings.default_zone), manual=manual)
        except (BotoCoreError, ClientError) as exc:
            fail(exc)

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Tool", style="cyan")
        table.add_column("Status")
        table.add_column("Version", style="dim")
        for check in result.tools:
            if check.installed:
                status = "[green]installed[/]"
            elif check.required:
                status = "[red]missing[/]"
            else:
                status = "[yellow]missing (optional)[/]"
            table.add_row(check.name, status, check.version)
        console.print(table)

        if result.stray_instances:
            console.print(
                f"[yellow]{len(result.stray_instances)} instance(s) running: "
                f"{' '.join(result.stray_instances)}[/]"
            )
        else:
            console.print("[dim]No running instances.[/]")

        if not result.all_ok:
            raise SystemExit(1)

    @main.command("zones")
    def zones():
        """List regions and the pipeline image each one uses."""
        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Region", style="cyan")
        table.add_column("Image")
        for region, ami in sorted(ZONE_AMI_TABLE.items()):
            table.add_row(region, "[dim]unavailable[/]" if ami == UNAVAILABLE else ami)
        console.print(table)
