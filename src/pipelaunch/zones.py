"""Region → machine image lookup.

The pipeline image is baked per region. Regions listed with
``UNAVAILABLE`` are known but have no image yet; adding a region means
adding a row here.
"""

from __future__ import annotations

from .errors import UnsupportedZone

UNAVAILABLE = "unavailable"

ZONE_AMI_TABLE: dict[str, str] = {
    "us-east-1": "ami-0c5a3e8b4f2d91a07",
    "us-east-2": UNAVAILABLE,
    "us-west-1": UNAVAILABLE,
    "us-west-2": "ami-07d8b2f1e5c6a3490",
}


def region_for_zone(zone: str) -> str:
    """Strip the availability-zone letter (``us-west-2a`` → ``us-west-2``)."""
    zone = zone.strip()
    if zone and zone[-1].isalpha():
        return zone[:-1]
    return zone


def resolve_ami(zone: str) -> str:
    """Return the pipeline image id for *zone*.

    Args:
        zone: Availability zone, e.g. ``us-west-2a``.

    Returns:
        Image id for the zone's region.

    Raises:
        UnsupportedZone: If the region is absent or marked unavailable.
    """
    region = region_for_zone(zone)
    ami = ZONE_AMI_TABLE.get(region)
    if ami is None or ami == UNAVAILABLE:
        raise UnsupportedZone(zone, region)
    return ami
