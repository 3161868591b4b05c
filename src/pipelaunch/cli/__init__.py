"""
Pipelaunch CLI.

The main Click group is defined here and each command module
registers itself onto it.

Entry point: pipelaunch.cli:entrypoint
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import click

from .. import __version__
from ._common import fail, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="pipelaunch")
@click.option("--verbose", "-v", is_flag=True, help="Log debug detail.")
def main(verbose: bool):
    """Pipelaunch: provision an EC2 instance and start a data pipeline on it."""
    setup_logging(verbose)


from .run import register_run_commands
from .instances import register_instance_commands

register_run_commands(main)
register_instance_commands(main)


def entrypoint(argv: Optional[list[str]] = None) -> None:
    """Console-script entry point. Every failure, usage errors included, exits 1."""
    try:
        main.main(args=argv, prog_name="pipelaunch", standalone_mode=False)
    except click.ClickException as exc:
        # Parsing can fail before the group callback has configured logging.
        setup_logging()
        fail(exc)
    except click.Abort:
        setup_logging()
        logging.getLogger("pipelaunch").error("Aborted!")
        sys.exit(1)
    sys.exit(0)
