"""Shared test fixtures for pipelaunch."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pipelaunch.models import ProvisioningRequest


class FakeClock:
    """Clock that records sleeps instead of sleeping."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def monotonic(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """Provide a virtual clock."""
    return FakeClock()


@pytest.fixture
def provider() -> MagicMock:
    """Provider mock for a healthy launch of i-0abc in us-west-2."""
    mock = MagicMock()
    mock.region = "us-west-2"
    mock.root_device_name.return_value = "/dev/sda1"
    mock.run_instance.return_value = "i-0abc"
    mock.bucket_size_bytes.return_value = 12 * 1024 ** 3
    mock.public_address.return_value = "54.1.2.3"
    mock.public_hostname.return_value = "ec2-54-1-2-3.us-west-2.compute.amazonaws.com"

    def in_state(state, instance_ids=None):
        if instance_ids is None:
            return []
        return list(instance_ids)

    mock.instance_ids_in_state.side_effect = in_state
    return mock


@pytest.fixture
def request_factory(tmp_path: Path):
    """Build ProvisioningRequests with test defaults."""
    config_artifact = tmp_path / "pipeline.yaml"
    config_artifact.write_text("threads: 8\n")
    key = tmp_path / "lab-key.pem"
    key.write_text("KEY")

    def _make(**overrides) -> ProvisioningRequest:
        fields = {
            "bucket_name": "my-data",
            "config_artifact_path": config_artifact,
            "ssh_key_path": key,
            "instance_type": "m5.large",
            "zone": "us-west-2a",
            "iam_profile": "pipelaunch-s3-access",
        }
        fields.update(overrides)
        return ProvisioningRequest(**fields)

    return _make
