"""Root volume sizing from the data bucket's footprint.

The volume holds the inputs plus intermediates, so it is sized at a
multiple of the bucket contents on top of a fixed OS/tooling base:

    size_gib = magnitude * 4 + 100

Anything that is not a GiB/TiB figure (small buckets, empty buckets,
unparseable text) is treated as a magnitude of 10.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any

logger = logging.getLogger(__name__)

VOLUME_MULTIPLIER = 4
VOLUME_BASE_GIB = 100
DEFAULT_MAGNITUDE = 10.0

_SIZE_RE = re.compile(r"^\s*([0-9]+(?:\.[0-9]+)?)\s*([A-Za-z]+)\s*$")
_SIZE_UNITS = ("Bytes", "KiB", "MiB", "GiB", "TiB")


def format_size(num_bytes: int) -> str:
    """Render a byte count the way ``aws s3 ls --human-readable`` does.

    Args:
        num_bytes: Total size in bytes.

    Returns:
        str: e.g. ``"512 Bytes"``, ``"12.3 GiB"``.
    """
    if num_bytes < 1024:
        return f"{num_bytes} Bytes"
    size = float(num_bytes)
    unit = _SIZE_UNITS[0]
    for unit in _SIZE_UNITS[1:]:
        size /= 1024
        if size < 1024 or unit == _SIZE_UNITS[-1]:
            break
    return f"{size:.1f} {unit}"


def parse_magnitude(
    human_size: str,
    default: float = DEFAULT_MAGNITUDE,
) -> float:
    """Pull the numeric magnitude out of a GiB/TiB size string.

    The unit is not converted: ``"2 TiB"`` yields ``2``. Any other unit,
    or text that does not parse, yields *default*.
    """
    match = _SIZE_RE.match(human_size or "")
    if not match or match.group(2) not in ("GiB", "TiB"):
        return default
    return float(match.group(1))


def estimate_volume_size(
    human_size: str,
    multiplier: int = VOLUME_MULTIPLIER,
    base_gib: int = VOLUME_BASE_GIB,
    default_magnitude: float = DEFAULT_MAGNITUDE,
) -> int:
    """Compute the root volume size in GiB.

    Args:
        human_size: Aggregate bucket size, e.g. ``"12.3 GiB"``.
        multiplier: Headroom factor for intermediate files.
        base_gib: Fixed allowance for the OS and tooling.
        default_magnitude: Magnitude used when *human_size* is not GiB/TiB.

    Returns:
        int: Volume size in GiB, rounded up.
    """
    magnitude = parse_magnitude(human_size, default=default_magnitude)
    return int(math.ceil(magnitude * multiplier + base_gib))


def bucket_volume_size(provider: Any, bucket: str, **kwargs: Any) -> int:
    """Size the root volume from the current contents of *bucket*.

    Args:
        provider: Object exposing ``bucket_size_bytes(bucket)``.
        bucket: Data bucket name.
        **kwargs: Passed through to :func:`estimate_volume_size`.

    Returns:
        int: Volume size in GiB.
    """
    human_size = format_size(provider.bucket_size_bytes(bucket))
    size_gib = estimate_volume_size(human_size, **kwargs)
    logger.info("Bucket %s holds %s; root volume will be %d GiB", bucket, human_size, size_gib)
    return size_gib
