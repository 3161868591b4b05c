"""Upload local input files to the data bucket before provisioning."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .errors import NoInputFiles

logger = logging.getLogger(__name__)


def list_input_files(path: Path, pattern: str) -> list[Path]:
    """List files in *path* matching *pattern*.

    Raises:
        NoInputFiles: If *path* is not a directory or nothing matches.
    """
    if not path.is_dir():
        raise NoInputFiles(str(path), pattern)
    files = [p for p in path.glob(pattern) if p.is_file()]
    if not files:
        raise NoInputFiles(str(path), pattern)
    return files


def stage_inputs(provider: Any, bucket: str, path: Path, pattern: str) -> list[str]:
    """Upload every matching file in *path* to *bucket*, one at a time.

    Upload errors propagate; files already uploaded are left in place.

    Args:
        provider: Object exposing ``upload_file(path, bucket)``.
        bucket: Target bucket.
        path: Local input directory.
        pattern: Glob pattern for input files.

    Returns:
        Object keys written, in upload order.
    """
    files = list_input_files(path, pattern)
    logger.info("Uploading %d input file(s) from %s to s3://%s", len(files), path, bucket)
    keys = []
    for f in files:
        logger.info("Uploading %s", f.name)
        keys.append(provider.upload_file(f, bucket))
    return keys
