"""Create the run's instance and wait for it to report running."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .errors import InstanceLaunchTimeout, RootDeviceNotFound
from .models import InstanceRecord, InstanceState, ProvisioningRequest
from .poller import DEFAULT_ATTEMPTS, DEFAULT_INTERVAL, Clock, PollPolicy, poll_until

logger = logging.getLogger(__name__)


def running_policy(
    provider: Any,
    interval: float = DEFAULT_INTERVAL,
    max_attempts: int = DEFAULT_ATTEMPTS,
) -> PollPolicy:
    """Poll policy that matches once the instance reports 'running'."""
    return PollPolicy(
        name="instance running",
        probe=lambda ids: provider.instance_ids_in_state("running", ids),
        interval=interval,
        max_attempts=max_attempts,
        timeout_error=InstanceLaunchTimeout,
    )


def create_instance(
    provider: Any,
    request: ProvisioningRequest,
    ami_id: str,
    volume_gib: int,
) -> InstanceRecord:
    """Issue the create-instance call.

    Args:
        provider: Cloud provider client.
        request: The run's request (type, zone, key, IAM profile).
        ami_id: Resolved pipeline image.
        volume_gib: Root volume size.

    Returns:
        InstanceRecord in the pending state.

    Raises:
        RootDeviceNotFound: If the image has no EBS root device.
    """
    root_device = provider.root_device_name(ami_id)
    if not root_device:
        raise RootDeviceNotFound(ami_id)

    logger.info(
        "Launching %s in %s (image=%s root=%s volume=%dGiB)",
        request.instance_type, request.zone, ami_id, root_device, volume_gib,
    )
    instance_id = provider.run_instance(
        image_id=ami_id,
        instance_type=request.instance_type,
        zone=request.zone,
        key_name=request.key_name,
        iam_profile=request.iam_profile,
        root_device=root_device,
        volume_gib=volume_gib,
        name=f"pipelaunch-{request.bucket_name}",
    )
    logger.info("Created instance %s", instance_id)
    return InstanceRecord(id=instance_id)


def launch_instance(
    provider: Any,
    request: ProvisioningRequest,
    ami_id: str,
    volume_gib: int,
    interval: float = DEFAULT_INTERVAL,
    max_attempts: int = DEFAULT_ATTEMPTS,
    clock: Optional[Clock] = None,
    on_created: Optional[Callable[[InstanceRecord], None]] = None,
) -> InstanceRecord:
    """Create the instance and block until it is running.

    A launch timeout leaves the instance in place for diagnosis.

    Args:
        on_created: Called with the pending record as soon as the id is
            known, so callers can report it if the wait fails.

    Raises:
        RootDeviceNotFound: If the image has no EBS root device.
        InstanceLaunchTimeout: If the instance never reports running.
    """
    record = create_instance(provider, request, ami_id, volume_gib)
    if on_created is not None:
        on_created(record)

    logger.info("Waiting for %s to report running", record.id)
    poll_until(running_policy(provider, interval, max_attempts), record.id, clock=clock)
    record.state = InstanceState.RUNNING
    logger.info("Instance %s is running", record.id)
    return record
