"""
Drive one provisioning run from preflight to handoff.

    preflight (stop if ssh/scp are missing) → stage inputs (optional)
      → resolve image + size volume
      → launch and wait for running → wait for reachability
      → [manual mode: stop here | hand the pipeline off]

Each phase blocks until it succeeds or raises. Phases record what they
learn on a :class:`RunContext`; nothing is shared any other way.

Only an unreachable instance is cleaned up automatically. Any other
failure after launch leaves the instance running; ``ctx.instance`` names
it so the caller can tell the operator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from .config import LaunchConfig
from .errors import MissingTools
from .handoff import start_pipeline
from .launcher import launch_instance
from .models import InstanceRecord, ProvisioningRequest
from .poller import Clock, SystemClock
from .preflight import PreflightResult, run_preflight
from .reachability import LossFn, wait_until_reachable
from .remote import SSHSession, packet_loss
from .staging import stage_inputs
from .termination import terminate_instances
from .volume import bucket_volume_size
from .zones import resolve_ami

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str, Path], SSHSession]


@dataclass
class RunContext:
    """State accumulated over one run. Each field is written by one phase."""

    request: ProvisioningRequest
    manual: bool = False
    preflight: Optional[PreflightResult] = None
    staged_keys: list[str] = field(default_factory=list)
    ami_id: Optional[str] = None
    volume_gib: Optional[int] = None
    instance: Optional[InstanceRecord] = None
    login_target: Optional[str] = None
    handed_off: bool = False


class Orchestrator:
    """Runs the provisioning phases against one provider.

    Args:
        provider: Cloud provider client (see :class:`~pipelaunch.providers.AWSProvider`).
        config: Run settings.
        clock: Time source for every wait.
        loss_fn: Reachability probe, ``(address, count) -> loss percent``.
        session_factory: Builds an ssh session from ``(target, key_path)``.
    """

    def __init__(
        self,
        provider: Any,
        config: Optional[LaunchConfig] = None,
        clock: Optional[Clock] = None,
        loss_fn: LossFn = packet_loss,
        session_factory: SessionFactory = SSHSession,
    ) -> None:
        self.provider = provider
        self.config = config or LaunchConfig()
        self.clock = clock or SystemClock()
        self.loss_fn = loss_fn
        self.session_factory = session_factory

    def run(
        self,
        request: ProvisioningRequest,
        manual: bool = False,
        ctx: Optional[RunContext] = None,
    ) -> RunContext:
        """Provision an instance and start the pipeline on it.

        Args:
            request: What to provision.
            manual: Stop once the instance is reachable; skip the handoff.
            ctx: Context to fill in. Pass one to inspect partial progress
                if the run raises.

        Returns:
            The completed RunContext.

        Raises:
            MissingTools: If ssh or scp is missing outside manual mode.
            PipelaunchError: Any phase failure; the run stops there.
        """
        ctx = ctx or RunContext(request=request, manual=manual)
        cfg = self.config

        # Zone problems are known before anything is uploaded or created.
        ctx.ami_id = resolve_ami(request.zone)

        ctx.preflight = run_preflight(self.provider, manual=manual)
        missing = ctx.preflight.required_missing
        if missing:
            raise MissingTools(c.name for c in missing)

        if request.local_input_path is not None:
            ctx.staged_keys = stage_inputs(
                self.provider, request.bucket_name,
                request.local_input_path, cfg.input_pattern,
            )
        else:
            logger.info("No local input given; using data already in s3://%s", request.bucket_name)

        ctx.volume_gib = bucket_volume_size(
            self.provider, request.bucket_name,
            multiplier=cfg.volume_multiplier,
            base_gib=cfg.volume_base_gib,
            default_magnitude=cfg.volume_default_magnitude,
        )

        def _record(instance: InstanceRecord) -> None:
            ctx.instance = instance

        launch_instance(
            self.provider, request, ctx.ami_id, ctx.volume_gib,
            interval=cfg.poll_interval,
            max_attempts=cfg.poll_attempts,
            clock=self.clock,
            on_created=_record,
        )

        ctx.login_target = wait_until_reachable(
            self.provider, ctx.instance, cfg.ssh_user,
            interval=cfg.reach_interval,
            max_attempts=cfg.reach_attempts,
            ping_count=cfg.ping_count,
            settle_seconds=cfg.settle_seconds,
            loss_fn=self.loss_fn,
            terminate=self.terminate,
            clock=self.clock,
        )

        if manual:
            logger.info("Manual mode: instance ready at %s", ctx.login_target)
            return ctx

        session = self.session_factory(ctx.login_target, request.ssh_key_path)
        start_pipeline(
            session,
            request.config_artifact_path,
            request.bucket_name,
            ctx.instance.id,
            remote_config_dir=cfg.remote_config_dir,
            remote_script=cfg.remote_script,
            remote_log=cfg.remote_log,
        )
        ctx.handed_off = True
        return ctx

    def terminate(self, instance_ids: Iterable[str]) -> None:
        """Terminate instances and wait until the provider confirms."""
        terminate_instances(
            self.provider, instance_ids,
            interval=self.config.poll_interval,
            max_attempts=self.config.poll_attempts,
            clock=self.clock,
        )
