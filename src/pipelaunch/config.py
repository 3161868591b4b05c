"""Run configuration: polling cadence, remote layout, sizing constants.

Defaults cover the stock pipeline image. Overrides live in
``$PIPELAUNCH_HOME/config.yaml``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel

from . import PIPELAUNCH_HOME

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"


class LaunchConfig(BaseModel):
    """Tunable settings for a provisioning run."""

    default_zone: str = "us-west-2a"
    default_iam_profile: str = "pipelaunch-s3-access"
    input_pattern: str = "*.fastq.gz"

    ssh_user: str = "ubuntu"
    remote_config_dir: str = "/home/ubuntu/pipeline/config"
    remote_script: str = "/home/ubuntu/pipeline/run_pipeline.sh"
    remote_log: str = "/home/ubuntu/pipeline/run_pipeline.log"

    poll_interval: float = 20
    poll_attempts: int = 15
    reach_interval: float = 5
    reach_attempts: int = 20
    ping_count: int = 3
    settle_seconds: float = 30

    volume_multiplier: int = 4
    volume_base_gib: int = 100
    volume_default_magnitude: float = 10


def load_config(path: Optional[Path] = None) -> LaunchConfig:
    """Load the run configuration.

    Args:
        path: Explicit config file. When given it must exist and parse.
            Otherwise ``$PIPELAUNCH_HOME/config.yaml`` is tried and any
            problem with it falls back to defaults.

    Returns:
        LaunchConfig with file overrides applied.

    Raises:
        FileNotFoundError: If an explicit *path* does not exist.
        ValueError: If an explicit *path* does not hold a valid config.
    """
    if path is not None:
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
        return LaunchConfig.model_validate(raw)

    config_file = Path(PIPELAUNCH_HOME).expanduser() / CONFIG_FILENAME
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return LaunchConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load %s: %s; using defaults", config_file, exc)
    return LaunchConfig()
