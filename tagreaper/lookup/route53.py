"""
Route 53 Lookups
================

Hosted zones are identified by their bare id (``Z123ABC``); boto3 returns
ids prefixed with ``/hostedzone/``, which :func:`zone_id` strips.

Record set listings leave out the ``NS`` and ``SOA`` records Route 53
creates with every zone, since those go away with the zone itself.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from tagreaper.core.resources import ResourceType
from tagreaper.lookup.base import BaseLookup, unique

Record = Dict[str, Any]

HOSTED_ZONE_PREFIX = "/hostedzone/"
ZONE_RECORD_TYPES = frozenset({"NS", "SOA"})


def zone_id(raw_id: str) -> str:
    """
    Strip the ``/hostedzone/`` prefix from a hosted zone id.

    Example
    -------
    >>> zone_id("/hostedzone/Z123")
    'Z123'
    """
    if raw_id.startswith(HOSTED_ZONE_PREFIX):
        return raw_id[len(HOSTED_ZONE_PREFIX):]
    return raw_id


def is_private_zone(zone: Record) -> bool:
    return bool(zone.get("Config", {}).get("PrivateZone"))


class Route53Lookup(BaseLookup):
    """Lookups for hosted zones and their record sets."""

    service_name = "route53"

    def list_hosted_zones(self) -> List[Record]:
        return self._collect(
            "list_hosted_zones", "HostedZones",
            resource_type=ResourceType.HOSTED_ZONE.value,
        )

    def get_hosted_zones(self, ids: Iterable[str]) -> List[Record]:
        """Hosted zones whose id (with or without prefix) is in ``ids``."""
        wanted = {zone_id(i) for i in unique(ids)}
        if not wanted:
            return []
        return [z for z in self.list_hosted_zones() if zone_id(z["Id"]) in wanted]

    def list_public_hosted_zones(self) -> List[Record]:
        return [z for z in self.list_hosted_zones() if not is_private_zone(z)]

    def list_record_sets(self, hosted_zone_id: str) -> List[Record]:
        """Record sets of a zone, without its NS and SOA records."""
        record_sets = self._collect(
            "list_resource_record_sets", "ResourceRecordSets",
            resource_type=ResourceType.RECORD_SET.value,
            HostedZoneId=zone_id(hosted_zone_id),
        )
        return [r for r in record_sets if r.get("Type") not in ZONE_RECORD_TYPES]
