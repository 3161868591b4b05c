"""Error taxonomy for a provisioning run.

Every error here is fatal to the run. The CLI catches
:class:`PipelaunchError`, logs it, and exits non-zero.
"""

from __future__ import annotations

from typing import Iterable, Optional


class PipelaunchError(Exception):
    """Base class for all run-aborting errors."""


class MissingRequiredArgument(PipelaunchError):
    """A required command-line parameter was not supplied."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Missing required argument: --{name}")


class UnsupportedZone(PipelaunchError):
    """The zone's region has no usable machine image."""

    def __init__(self, zone: str, region: str) -> None:
        self.zone = zone
        self.region = region
        super().__init__(f"Zone {zone} (region {region}) is not supported")


class RootDeviceNotFound(PipelaunchError):
    """The image metadata names no EBS-backed root device."""

    def __init__(self, image_id: str) -> None:
        self.image_id = image_id
        super().__init__(f"No EBS root device found for image {image_id}")


class MissingTools(PipelaunchError):
    """Local tools the run needs are not on PATH."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names = list(names)
        super().__init__(f"Required tools not found on PATH: {', '.join(self.names)}")


class PollTimeout(PipelaunchError):
    """A bounded poll ran out of attempts without a match."""

    def __init__(
        self,
        probe_name: str,
        targets: Iterable[str],
        attempts: int,
        interval: float,
    ) -> None:
        self.probe_name = probe_name
        self.targets = list(targets)
        self.attempts = attempts
        self.interval = interval
        super().__init__(
            f"Timed out waiting for {probe_name} on {' '.join(self.targets)} "
            f"after {attempts} attempts ({attempts * interval:g}s)"
        )


class InstanceLaunchTimeout(PollTimeout):
    """The instance never reported running."""


class TerminationTimeout(PollTimeout):
    """The instance never reported terminated."""


class InstanceUnreachable(PipelaunchError):
    """Every reachability probe was lost; the instance has been terminated."""

    def __init__(self, instance_id: str, address: Optional[str], attempts: int) -> None:
        self.instance_id = instance_id
        self.address = address
        self.attempts = attempts
        super().__init__(
            f"Instance {instance_id} ({address}) unreachable after "
            f"{attempts} attempts; instance terminated"
        )


class NoInputFiles(PipelaunchError):
    """The local input path is invalid or holds no matching files."""

    def __init__(self, path: str, pattern: str) -> None:
        self.path = path
        self.pattern = pattern
        super().__init__(f"No input files matching {pattern} in {path}")


class PlaceholderError(PipelaunchError):
    """The remote launch script cannot be parameterized safely."""

    def __init__(self, token: str, message: str) -> None:
        self.token = token
        super().__init__(f"Placeholder {token}: {message}")


class RemoteCommandError(PipelaunchError):
    """A local ssh/scp/ping invocation failed."""

    def __init__(self, command: list[str], returncode: int, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr.strip() else ""
        super().__init__(
            f"Command {command[0]} exited with {returncode}{detail}"
        )
