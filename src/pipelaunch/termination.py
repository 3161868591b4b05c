"""Terminate instances and wait for the provider to confirm it."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from .errors import TerminationTimeout
from .poller import DEFAULT_ATTEMPTS, DEFAULT_INTERVAL, Clock, PollPolicy, poll_until

logger = logging.getLogger(__name__)


def terminated_policy(
    provider: Any,
    interval: float = DEFAULT_INTERVAL,
    max_attempts: int = DEFAULT_ATTEMPTS,
) -> PollPolicy:
    """Poll policy that matches once instances report 'terminated'."""
    return PollPolicy(
        name="instance terminated",
        probe=lambda ids: provider.instance_ids_in_state("terminated", ids),
        interval=interval,
        max_attempts=max_attempts,
        timeout_error=TerminationTimeout,
    )


def terminate_instances(
    provider: Any,
    instance_ids: Iterable[str],
    interval: float = DEFAULT_INTERVAL,
    max_attempts: int = DEFAULT_ATTEMPTS,
    clock: Optional[Clock] = None,
) -> None:
    """Request termination and block until it is observed.

    Args:
        provider: Cloud provider client.
        instance_ids: Instances to terminate.
        interval: Seconds between state checks.
        max_attempts: State checks before giving up.
        clock: Time source for the poll.

    Raises:
        TerminationTimeout: If termination is never observed.
    """
    ids = list(instance_ids)
    logger.info("Terminating %s", " ".join(ids))
    provider.terminate_instances(ids)
    poll_until(terminated_policy(provider, interval, max_attempts), ids, clock=clock)
    logger.info("Terminated %s", " ".join(ids))
