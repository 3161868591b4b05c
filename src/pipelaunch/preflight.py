"""
Preflight checks run before anything is provisioned.

Checks for:
  - Local tools: ssh and scp (required for the handoff), ping (reachability)
  - Stray instances still running from previous jobs (warn only)

Nothing here blocks the run or touches cloud resources.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ToolStatus(str, Enum):
    """Status of a local tool."""
    INSTALLED = "installed"
    MISSING = "missing"


@dataclass
class ToolCheck:
    """Result of checking a single local tool."""

    name: str
    status: ToolStatus
    required: bool
    version: str = ""

    @property
    def installed(self) -> bool:
        """Whether the tool is on PATH."""
        return self.status == ToolStatus.INSTALLED

    @property
    def ok(self) -> bool:
        """Whether this check passes (installed, or optional and missing)."""
        return self.installed or not self.required


@dataclass
class PreflightResult:
    """Combined result of all preflight checks."""

    tools: list[ToolCheck] = field(default_factory=list)
    stray_instances: list[str] = field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        """True if all required tools are present."""
        return all(c.ok for c in self.tools)

    @property
    def required_missing(self) -> list[ToolCheck]:
        """List of required tools that are missing."""
        return [c for c in self.tools if c.required and not c.installed]


def check_tool(name: str, required: bool = True, version_flag: str = "-V") -> ToolCheck:
    """Check that *name* is on PATH and grab its version line.

    Args:
        name: Executable name.
        required: Whether the run needs it.
        version_flag: Flag that prints a version banner.

    Returns:
        ToolCheck for the tool.
    """
    if not shutil.which(name):
        return ToolCheck(name=name, status=ToolStatus.MISSING, required=required)

    version = ""
    try:
        result = subprocess.run(
            [name, version_flag],
            capture_output=True, text=True, timeout=5,
        )
        # ssh prints its banner on stderr
        banner = (result.stdout or result.stderr).strip()
        if banner:
            version = banner.split("\n")[0][:60]
    except (OSError, subprocess.TimeoutExpired):
        pass
    return ToolCheck(name=name, status=ToolStatus.INSTALLED, required=required, version=version)


def check_stray_instances(provider: Any) -> list[str]:
    """Warn about instances already running anywhere in the account.

    Args:
        provider: Object exposing ``instance_ids_in_state(state)``.

    Returns:
        Ids of running instances (empty if none).
    """
    running = provider.instance_ids_in_state("running")
    if running:
        logger.warning(
            "WARNING: %d instance(s) from previous jobs still running: %s",
            len(running), " ".join(running),
        )
    return running


def run_preflight(provider: Any, manual: bool = False) -> PreflightResult:
    """Run all preflight checks.

    Args:
        provider: Cloud provider client.
        manual: Manual mode skips the handoff, so ssh/scp become optional.

    Returns:
        PreflightResult with tool checks and stray instance ids.
    """
    tools = [
        check_tool("ssh", required=not manual),
        check_tool("scp", required=not manual),
        check_tool("ping", required=False),
    ]
    for tool in tools:
        if not tool.ok:
            logger.warning("Required tool missing: %s", tool.name)
    return PreflightResult(tools=tools, stray_instances=check_stray_instances(provider))
