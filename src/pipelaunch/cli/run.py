"""Provision-and-launch command."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from botocore.exceptions import BotoCoreError, ClientError
from rich.panel import Panel

from ..config import load_config
from ..errors import InstanceUnreachable, PipelaunchError
from ..models import ProvisioningRequest
from ..orchestrator import Orchestrator, RunContext
from ._common import console, fail, left_running_notice, make_provider, require


def register_run_commands(main: click.Group) -> None:
    """Register the run command."""

    @main.command("run")
    @click.option("--bucket", "-b", default=None, help="S3 data bucket. [required]")
    @click.option("--config", "-c", "config_artifact", default=None, type=click.Path(),
                  help="Pipeline config file to stage on the instance. [required]")
    @click.option("--key", "-k", default=None, type=click.Path(),
                  help="SSH private key; its stem names the EC2 key pair. [required]")
    @click.option("--instance-type", "-t", default=None, help="EC2 instance type. [required]")
    @click.option("--input", "-i", "input_path", default=None, type=click.Path(),
                  help="Local directory of input files to upload first.")
    @click.option("--zone", "-z", default=None, help="Availability zone.")
    @click.option("--iam-profile", default=None, help="IAM instance profile name.")
    @click.option("--manual", is_flag=True,
                  help="Stop once the instance is reachable; do not start the pipeline.")
    @click.option("--config-file", default=None, type=click.Path(),
                  help="pipelaunch settings file (overrides $PIPELAUNCH_HOME/config.yaml).")
    def run(
        bucket: Optional[str],
        config_artifact: Optional[str],
        key: Optional[str],
        instance_type: Optional[str],
        input_path: Optional[str],
        zone: Optional[str],
        iam_profile: Optional[str],
        manual: bool,
        config_file: Optional[str],
    ):
        """Provision an instance and hand the pipeline off to it.

        Without --input the pipeline uses data already in the bucket.

        Only an unreachable instance is terminated automatically. On any
        other failure the instance is left running for inspection and
        must be terminated by hand.

        Examples:

            pipelaunch run -b my-data -c pipeline.yaml -k ~/.ssh/lab.pem -t m5.large

            pipelaunch run -b my-data -c pipeline.yaml -k ~/.ssh/lab.pem -t m5.large -i ./reads --manual
        """
        ctx: Optional[RunContext] = None
        try:
            require(
                bucket=bucket,
                config=config_artifact,
                key=key,
                instance_type=instance_type,
            )
            settings = load_config(Path(config_file).expanduser() if config_file else None)
            request = ProvisioningRequest(
                bucket_name=bucket,
                config_artifact_path=Path(config_artifact).expanduser(),
                ssh_key_path=Path(key).expanduser(),
                instance_type=instance_type,
                zone=zone or settings.default_zone,
                iam_profile=iam_profile or settings.default_iam_profile,
                local_input_path=Path(input_path).expanduser() if input_path else None,
            )
            ctx = RunContext(request=request, manual=manual)
            Orchestrator(make_provider(request.zone), config=settings).run(
                request, manual=manual, ctx=ctx,
            )
        except InstanceUnreachable as exc:
            fail(exc)
        except (PipelaunchError, BotoCoreError, ClientError, OSError, ValueError) as exc:
            if ctx is not None and ctx.instance is not None:
                left_running_notice(ctx.instance.id)
            fail(exc)

        instance = ctx.instance
        if manual:
            body = (
                f"[bold green]Instance ready[/]\n"
                f"ID: {instance.id}\n"
                f"Login: [cyan]ssh -i {ctx.request.ssh_key_path} {ctx.login_target}[/]\n"
                f"Terminate with: [cyan]pipelaunch terminate {instance.id}[/]"
            )
        else:
            body = (
                f"[bold green]Pipeline started[/]\n"
                f"ID: {instance.id}\n"
                f"Host: {ctx.login_target}\n"
                f"Results: s3://{ctx.request.bucket_name} (confirm out of band)"
            )
        console.print(Panel(body, title="Run Complete", border_style="green"))
