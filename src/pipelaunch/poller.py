"""
Bounded sleep-and-recheck polling.

One routine backs every wait in a run: instance running, instance
terminated, and network reachability. Each wait is described by a
:class:`PollPolicy`. There is no backoff or jitter; the worst-case wait
is ``interval * max_attempts``.

The clock is injectable so tests can drive polls without sleeping.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol, Type, Union

from .errors import PollTimeout

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 20.0
DEFAULT_ATTEMPTS = 15

Snapshot = Union[str, Iterable[str]]
Probe = Callable[[list[str]], Snapshot]


class Clock(Protocol):
    """Time source used by polling loops."""

    def sleep(self, seconds: float) -> None: ...

    def monotonic(self) -> float: ...


class SystemClock:
    """Wall-clock implementation of :class:`Clock`."""

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)

    def monotonic(self) -> float:
        return time.monotonic()


@dataclass(frozen=True)
class PollPolicy:
    """One bounded-retry contract.

    Attributes:
        name: What is being waited for, used in logs and timeouts.
        probe: Called with the target ids; returns a snapshot (text or
            an iterable of ids) to search for the targets.
        interval: Seconds slept before every check, the first included.
        max_attempts: Checks allowed before giving up.
        timeout_error: PollTimeout subclass raised on exhaustion.
    """

    name: str
    probe: Probe
    interval: float = DEFAULT_INTERVAL
    max_attempts: int = DEFAULT_ATTEMPTS
    timeout_error: Type[PollTimeout] = PollTimeout


def _split_targets(targets: Union[str, Iterable[str]]) -> list[str]:
    if isinstance(targets, str):
        return targets.split()
    return [t for t in targets if t]


def snapshot_matches(snapshot: Snapshot, targets: list[str]) -> bool:
    """True if any target id appears in *snapshot*.

    Text snapshots are searched by substring; iterables by membership.
    """
    if snapshot is None:
        return False
    if isinstance(snapshot, str):
        return any(t in snapshot for t in targets)
    seen = set(snapshot)
    return any(t in seen for t in targets)


def poll_until(
    policy: PollPolicy,
    targets: Union[str, Iterable[str]],
    clock: Optional[Clock] = None,
) -> int:
    """Sleep, probe, repeat until a target shows up in the snapshot.

    Args:
        policy: What to probe and how often.
        targets: One id, several space-joined ids, or an iterable of ids.
        clock: Time source; defaults to :class:`SystemClock`.

    Returns:
        int: The attempt number (1-based) that matched.

    Raises:
        PollTimeout: ``policy.timeout_error`` once attempts are exhausted.
    """
    clock = clock or SystemClock()
    ids = _split_targets(targets)
    started = clock.monotonic()

    for attempt in range(1, policy.max_attempts + 1):
        clock.sleep(policy.interval)
        snapshot = policy.probe(ids)
        if snapshot_matches(snapshot, ids):
            logger.debug(
                "%s: matched %s on attempt %d after %.0fs",
                policy.name, ids, attempt, clock.monotonic() - started,
            )
            return attempt
        logger.debug(
            "%s: no match for %s (attempt %d/%d)",
            policy.name, ids, attempt, policy.max_attempts,
        )

    logger.debug("%s: gave up on %s after %.0fs", policy.name, ids, clock.monotonic() - started)
    raise policy.timeout_error(policy.name, ids, policy.max_attempts, policy.interval)
