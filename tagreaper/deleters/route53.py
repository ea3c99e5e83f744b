"""
Deleters for Route 53 hosted zones and record sets.

A hosted zone can only be deleted once it holds nothing but its NS and SOA
records. For a private zone, records with the same names in public zones
(split-horizon setups) are deleted as well, before the private zone.
"""

import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from ..core.config import DeleteConfig
from ..core.resources import ResourceType
from ..core.retry import is_not_found
from ..lookup import chunked
from ..lookup.route53 import is_private_zone, zone_id
from .base import DeleteSummary, ResourceDeleter, SubResourceDeleter

logger = logging.getLogger(__name__)

CHANGE_BATCH_SIZE = 100


def record_set_name(record_set: Dict[str, Any]) -> str:
    """Display name of a record set: ``<name> <type>[ <set identifier>]``."""
    name = f"{record_set['Name']} {record_set['Type']}"
    if record_set.get("SetIdentifier"):
        name = f"{name} {record_set['SetIdentifier']}"
    return name


class RecordSetDeleter(SubResourceDeleter):
    """
    Deletes record sets of one hosted zone with batched DELETE changes.

    When a batch is rejected, its records are retried one change at a time so
    each failure is reported against its own record.
    """

    resource_type = ResourceType.RECORD_SET
    parent_resource_type = ResourceType.HOSTED_ZONE
    service_name = "route53"
    description = "Route53 RecordSet"

    def add_record_set(self, record_set: Dict[str, Any]) -> None:
        self.add_resource(record_set_name(record_set), record_set=record_set)

    def _delete(self, config: DeleteConfig, summary: DeleteSummary) -> None:
        hosted_zone_id = self.parent_name
        for chunk in chunked(self._names(), CHANGE_BATCH_SIZE):
            changes = [self._change(name) for name in chunk]
            try:
                config.call(
                    self.client.change_resource_record_sets,
                    HostedZoneId=hosted_zone_id,
                    ChangeBatch={"Changes": changes},
                )
            except ClientError as e:
                if is_not_found(e):
                    self._skip_missing(summary, set(), chunk)
                    continue
                logger.debug(f"Change batch for {hosted_zone_id} rejected, deleting records one by one")
                for name in chunk:
                    self._execute(
                        config, summary, name, self.client.change_resource_record_sets,
                        HostedZoneId=hosted_zone_id,
                        ChangeBatch={"Changes": [self._change(name)]},
                    )
                continue
            finally:
                config.pause()

            for name in chunk:
                self._record_success(config, summary, name)

    def _change(self, name: str) -> Dict[str, Any]:
        return {"Action": "DELETE", "ResourceRecordSet": self.call_params[name]["record_set"]}


class HostedZoneDeleter(ResourceDeleter):
    resource_type = ResourceType.HOSTED_ZONE
    service_name = "route53"
    description = "Route53 HostedZone"

    def _delete(self, config: DeleteConfig, summary: DeleteSummary) -> None:
        names = list(dict.fromkeys(zone_id(n) for n in self._names()))
        zones = self._resolve(
            config, summary, lambda: self.lookup.route53.get_hosted_zones(names)
        )
        if zones is None:
            return
        zones_by_id = {zone_id(z["Id"]): z for z in zones}
        self._skip_missing(summary, set(zones_by_id), names)

        public_zones: Optional[List[Dict[str, Any]]] = None
        for name in names:
            zone = zones_by_id.get(name)
            if zone is None:
                continue

            record_sets = self._resolve(
                config, summary, lambda: self.lookup.route53.list_record_sets(name)
            ) or []

            if is_private_zone(zone) and record_sets:
                if public_zones is None:
                    public_zones = self._resolve(
                        config, summary, self.lookup.route53.list_public_hosted_zones
                    ) or []
                self._delete_public_records(config, summary, record_sets, public_zones)

            if record_sets:
                deleter = RecordSetDeleter(self.aws_client, name, lookup=self.lookup)
                for record_set in record_sets:
                    deleter.add_record_set(record_set)
                self._delete_children(config, summary, deleter)

            self._execute(config, summary, name, self.client.delete_hosted_zone, Id=name)

    def _delete_public_records(
        self,
        config: DeleteConfig,
        summary: DeleteSummary,
        private_record_sets: List[Dict[str, Any]],
        public_zones: List[Dict[str, Any]],
    ) -> None:
        """Delete public-zone records sharing a name with the private zone's records."""
        private_names = {r["Name"] for r in private_record_sets}
        for public_zone in public_zones:
            public_id = zone_id(public_zone["Id"])
            record_sets = self._resolve(
                config, summary, lambda: self.lookup.route53.list_record_sets(public_id)
            ) or []
            shadowed = [r for r in record_sets if r["Name"] in private_names]
            if not shadowed:
                continue
            deleter = RecordSetDeleter(self.aws_client, public_id, lookup=self.lookup)
            for record_set in shadowed:
                deleter.add_record_set(record_set)
            self._delete_children(config, summary, deleter)
