"""
Wait for a running instance to answer on the network.

A running instance is not necessarily reachable: networking and sshd come
up after the provider reports 'running'. Each attempt sends a handful of
echo probes; any answer counts as reachable.

An instance that never answers is useless to the run, so it is
terminated before :class:`InstanceUnreachable` is raised. This is the only
failure path that cleans up after itself.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

from .errors import InstanceUnreachable, PollTimeout
from .models import InstanceRecord, InstanceState
from .poller import Clock, PollPolicy, SystemClock, poll_until
from .remote import packet_loss
from .termination import terminate_instances

logger = logging.getLogger(__name__)

REACH_INTERVAL = 5.0
REACH_ATTEMPTS = 20
SETTLE_SECONDS = 30.0

LossFn = Callable[[str, int], float]
TerminateFn = Callable[[Iterable[str]], None]


def wait_until_reachable(
    provider: Any,
    record: InstanceRecord,
    ssh_user: str,
    interval: float = REACH_INTERVAL,
    max_attempts: int = REACH_ATTEMPTS,
    ping_count: int = 3,
    settle_seconds: float = SETTLE_SECONDS,
    loss_fn: LossFn = packet_loss,
    terminate: Optional[TerminateFn] = None,
    clock: Optional[Clock] = None,
) -> str:
    """Block until *record* answers pings, then return its login target.

    Args:
        provider: Cloud provider client.
        record: Running instance; its address, hostname and state are
            updated in place.
        ssh_user: Login user baked into the image.
        interval: Seconds between reachability attempts.
        max_attempts: Attempts before the instance is given up on.
        ping_count: Echo probes per attempt.
        settle_seconds: Pause after the first answer so sshd can start.
        loss_fn: ``(address, count) -> loss percent``.
        terminate: Called with ``[record.id]`` on exhaustion. Defaults to
            :func:`terminate_instances` on *provider*.
        clock: Time source.

    Returns:
        str: ``user@hostname`` login target.

    Raises:
        InstanceUnreachable: Every attempt lost every probe.
    """
    clock = clock or SystemClock()
    if terminate is None:
        def terminate(ids: Iterable[str]) -> None:
            terminate_instances(provider, ids, clock=clock)

    record.public_address = provider.public_address(record.id)
    logger.info("Waiting for %s (%s) to become reachable", record.id, record.public_address)

    def probe(ids: list[str]) -> list[str]:
        if not record.public_address:
            record.public_address = provider.public_address(record.id)
            if not record.public_address:
                return []
        loss = loss_fn(record.public_address, ping_count)
        logger.debug("%s: %.0f%% packet loss", record.public_address, loss)
        return [record.id] if loss < 100 else []

    policy = PollPolicy(
        name="instance reachable",
        probe=probe,
        interval=interval,
        max_attempts=max_attempts,
    )
    try:
        poll_until(policy, record.id, clock=clock)
    except PollTimeout:
        record.state = InstanceState.UNREACHABLE
        logger.error("Instance %s is unreachable; terminating it", record.id)
        terminate([record.id])
        record.state = InstanceState.TERMINATED
        raise InstanceUnreachable(record.id, record.public_address, max_attempts)

    record.public_hostname = provider.public_hostname(record.id)
    target = f"{ssh_user}@{record.public_hostname or record.public_address}"
    logger.info("Instance %s reachable at %s", record.id, target)
    clock.sleep(settle_seconds)
    return target
