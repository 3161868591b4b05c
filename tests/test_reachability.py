"""Tests for the reachability wait and its compensating termination."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from pipelaunch.errors import InstanceUnreachable
from pipelaunch.models import InstanceRecord, InstanceState
from pipelaunch.reachability import wait_until_reachable


def _loss_sequence(values):
    """loss_fn returning *values* in order, then 100 forever."""
    it = iter(values)
    return MagicMock(side_effect=lambda address, count: next(it, 100.0))


class TestWaitUntilReachable:
    def test_all_lost_terminates_once(self, provider, clock):
        record = InstanceRecord(id="i-0abc", state=InstanceState.RUNNING)
        loss = _loss_sequence([100.0] * 20)
        terminate = MagicMock()

        with pytest.raises(InstanceUnreachable) as excinfo:
            wait_until_reachable(
                provider, record, "ubuntu",
                loss_fn=loss, terminate=terminate, clock=clock,
            )
        terminate.assert_called_once_with(["i-0abc"])
        assert loss.call_count == 20
        assert excinfo.value.instance_id == "i-0abc"
        assert record.state == InstanceState.TERMINATED

    def test_partial_loss_on_fifth_attempt(self, provider, clock):
        record = InstanceRecord(id="i-0abc", state=InstanceState.RUNNING)
        loss = _loss_sequence([100.0, 100.0, 100.0, 100.0, 66.7])
        terminate = MagicMock()

        target = wait_until_reachable(
            provider, record, "ubuntu",
            settle_seconds=30, loss_fn=loss, terminate=terminate, clock=clock,
        )
        assert loss.call_count == 5
        terminate.assert_not_called()
        assert target == "ubuntu@ec2-54-1-2-3.us-west-2.compute.amazonaws.com"
        assert record.public_address == "54.1.2.3"
        assert record.public_hostname.startswith("ec2-54-1-2-3")
        # five probe intervals, then the settle delay
        assert clock.sleeps == [5.0] * 5 + [30]

    def test_pings_public_address(self, provider, clock):
        record = InstanceRecord(id="i-0abc")
        loss = _loss_sequence([0.0])

        wait_until_reachable(provider, record, "ubuntu", ping_count=4, loss_fn=loss, clock=clock)
        loss.assert_called_once_with("54.1.2.3", 4)

    def test_address_resolved_late(self, provider, clock):
        provider.public_address.side_effect = [None, None, "54.9.9.9"]
        record = InstanceRecord(id="i-0abc")
        loss = _loss_sequence([0.0])

        wait_until_reachable(provider, record, "ubuntu", loss_fn=loss, clock=clock)
        loss.assert_called_once_with("54.9.9.9", 3)
        assert len([s for s in clock.sleeps if s == 5.0]) == 2

    def test_default_terminate_uses_provider(self, provider, clock):
        record = InstanceRecord(id="i-0abc")
        loss = _loss_sequence([])

        with pytest.raises(InstanceUnreachable):
            wait_until_reachable(provider, record, "ubuntu", max_attempts=2, loss_fn=loss, clock=clock)
        provider.terminate_instances.assert_called_once_with(["i-0abc"])
