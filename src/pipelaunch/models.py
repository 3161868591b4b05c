"""
Pydantic models for a single provisioning run.

A run owns exactly one instance. Nothing here is persisted: the cloud
provider's record is the only state that outlives the process.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict


class InstanceState(str, Enum):
    """Lifecycle state of the run's instance as observed by polling."""

    PENDING = "pending"
    RUNNING = "running"
    UNREACHABLE = "unreachable"
    TERMINATED = "terminated"


class ProvisioningRequest(BaseModel):
    """Everything the operator asked for. Frozen once the run starts."""

    model_config = ConfigDict(frozen=True)

    bucket_name: str
    config_artifact_path: Path
    ssh_key_path: Path
    instance_type: str
    zone: str
    iam_profile: str
    local_input_path: Optional[Path] = None

    @property
    def key_name(self) -> str:
        """EC2 key pair name, taken from the key file's stem."""
        return self.ssh_key_path.stem


class InstanceRecord(BaseModel):
    """The run's instance as last observed."""

    id: str
    state: InstanceState = InstanceState.PENDING
    public_address: Optional[str] = None
    public_hostname: Optional[str] = None
