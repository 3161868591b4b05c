"""Thin wrappers around the local ssh, scp and ping binaries.

All commands run non-interactively: host keys of fresh instances are
accepted on first contact and password prompts are disabled.
"""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
from pathlib import Path
from typing import Optional

from .errors import RemoteCommandError

logger = logging.getLogger(__name__)

SSH_OPTIONS = [
    "-o", "StrictHostKeyChecking=no",
    "-o", "UserKnownHostsFile=/dev/null",
    "-o", "BatchMode=yes",
    "-o", "ConnectTimeout=15",
    "-o", "LogLevel=ERROR",
]

_LOSS_RE = re.compile(r"([0-9]+(?:\.[0-9]+)?)% packet loss")


def _run(
    cmd: list[str],
    input_text: Optional[str] = None,
    timeout: float = 300,
) -> subprocess.CompletedProcess:
    """Run *cmd*, raising RemoteCommandError on a non-zero exit."""
    logger.debug("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            input=input_text,
            capture_output=True, text=True, timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise RemoteCommandError(cmd, -1, f"timed out after {timeout}s") from exc
    except OSError as exc:
        raise RemoteCommandError(cmd, -1, str(exc)) from exc
    if result.returncode != 0:
        raise RemoteCommandError(cmd, result.returncode, result.stderr)
    return result


class SSHSession:
    """Key-authenticated ssh/scp access to one login target.

    Args:
        target: ``user@host`` login target.
        key_path: Private key file.
    """

    def __init__(self, target: str, key_path: Path) -> None:
        self.target = target
        self.key_path = key_path

    def _base(self, binary: str) -> list[str]:
        return [binary, "-i", str(self.key_path), *SSH_OPTIONS]

    def run(self, command: str, input_text: Optional[str] = None) -> str:
        """Run *command* on the remote host and return its stdout."""
        result = _run(self._base("ssh") + [self.target, command], input_text=input_text)
        return result.stdout

    def copy_to(self, local_path: Path, remote_dir: str) -> str:
        """Copy a local file into *remote_dir*; returns the remote path."""
        _run(self._base("scp") + [str(local_path), f"{self.target}:{remote_dir}/"])
        return f"{remote_dir}/{local_path.name}"

    def read_file(self, remote_path: str) -> str:
        return self.run(f"cat {shlex.quote(remote_path)}")

    def write_file(self, remote_path: str, content: str) -> None:
        self.run(f"cat > {shlex.quote(remote_path)}", input_text=content)

    def start_detached(self, command: str, log_path: str) -> None:
        """Start *command* so it outlives this connection.

        stdio is redirected away from the session so ssh returns as soon
        as the process is forked. No handle to the process is kept.
        """
        self.run(f"nohup {command} > {shlex.quote(log_path)} 2>&1 < /dev/null &")


def packet_loss(address: str, count: int = 3, timeout: float = 30) -> float:
    """Ping *address* and return the loss percentage (0-100).

    A ping that cannot run or prints no summary counts as total loss.
    """
    cmd = ["ping", "-c", str(count), "-W", "2", address]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("ping %s failed: %s", address, exc)
        return 100.0
    match = _LOSS_RE.search(result.stdout)
    if not match:
        return 100.0
    return float(match.group(1))
