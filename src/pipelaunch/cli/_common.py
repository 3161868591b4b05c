"""Shared helpers for the CLI command modules."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.panel import Panel

from ..errors import MissingRequiredArgument
from ..providers import AWSProvider
from ..zones import region_for_zone

console = Console(stderr=True)

LOG_FORMAT = "[%(asctime)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose: bool = False) -> None:
    """Timestamped ``[<date> <time>] <message>`` lines on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        force=True,
    )
    # boto's own debug output drowns the run log
    for noisy in ("botocore", "boto3", "urllib3", "s3transfer"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def require(**values: Optional[str]) -> None:
    """Raise MissingRequiredArgument for the first unset value.

    Keyword names use underscores; they are reported as --dashed options.
    """
    for name, value in values.items():
        if value is None or value == "":
            raise MissingRequiredArgument(name.replace("_", "-"))


def make_provider(zone: str) -> AWSProvider:
    """Provider bound to the region that holds *zone*."""
    return AWSProvider(region=region_for_zone(zone))


def left_running_notice(instance_id: str) -> None:
    """Tell the operator an instance was left running and how to stop it."""
    console.print(Panel(
        f"[bold yellow]Instance {instance_id} is still running and billing.[/]\n"
        f"Inspect it, then clean up with:\n"
        f"  [cyan]pipelaunch terminate {instance_id}[/]",
        title="Resources left running",
        border_style="yellow",
    ))


def fail(exc: Exception) -> None:
    """Log a fatal error and exit 1."""
    logging.getLogger("pipelaunch").error("ERROR: %s", exc)
    raise SystemExit(1)
