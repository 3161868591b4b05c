"""Tests for instance creation and the running wait."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from pipelaunch.errors import InstanceLaunchTimeout, RootDeviceNotFound
from pipelaunch.launcher import create_instance, launch_instance
from pipelaunch.models import InstanceState


class TestCreateInstance:
    def test_maps_root_device_to_volume(self, provider, request_factory):
        record = create_instance(provider, request_factory(), "ami-123", 148)

        assert record.id == "i-0abc"
        assert record.state == InstanceState.PENDING
        kwargs = provider.run_instance.call_args[1]
        assert kwargs["root_device"] == "/dev/sda1"
        assert kwargs["volume_gib"] == 148
        assert kwargs["zone"] == "us-west-2a"
        assert kwargs["key_name"] == "lab-key"
        assert kwargs["iam_profile"] == "pipelaunch-s3-access"
        assert kwargs["instance_type"] == "m5.large"

    def test_no_root_device_raises(self, provider, request_factory):
        provider.root_device_name.return_value = None
        with pytest.raises(RootDeviceNotFound):
            create_instance(provider, request_factory(), "ami-123", 148)
        provider.run_instance.assert_not_called()


class TestLaunchInstance:
    def test_running_on_first_attempt(self, provider, request_factory, clock):
        created = MagicMock()
        record = launch_instance(
            provider, request_factory(), "ami-123", 148, clock=clock, on_created=created,
        )
        assert record.state == InstanceState.RUNNING
        assert clock.sleeps == [20]
        created.assert_called_once()
        provider.instance_ids_in_state.assert_called_with("running", ["i-0abc"])

    def test_timeout_leaves_instance(self, provider, request_factory, clock):
        provider.instance_ids_in_state.side_effect = None
        provider.instance_ids_in_state.return_value = []

        with pytest.raises(InstanceLaunchTimeout):
            launch_instance(provider, request_factory(), "ami-123", 148, clock=clock)
        assert len(clock.sleeps) == 15
        assert sum(clock.sleeps) == 300
        provider.terminate_instances.assert_not_called()
