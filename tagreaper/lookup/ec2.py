"""
EC2 Lookups
===========

Describe queries for the EC2 resource types: VPCs and everything hanging off
them, elastic IPs, VPN resources and volumes.

Each method accepts either the resource ids themselves or the id of a parent
(VPC, subnet, VPN gateway, network interface), and returns the raw boto3
records. Records that cannot or should not be deleted are filtered out here:

- default VPCs, subnets (``DefaultForAz``), security groups and network ACLs;
- main route tables and main route table associations;
- instances already shutting down or terminated;
- NAT gateways, VPN gateways, VPN connections and customer gateways that
  are deleting or deleted;
- volumes that are still attached.

Example
-------
>>> lookup = EC2Lookup(aws_client)
>>> subnets = lookup.describe_subnets(vpc_ids=["vpc-0abc"])
>>> [s["SubnetId"] for s in subnets]
['subnet-0123']
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from tagreaper.core.resources import ResourceType
from tagreaper.lookup.base import BaseLookup

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

GONE_STATES = frozenset({"deleting", "deleted"})
TERMINATING_INSTANCE_STATES = frozenset({"shutting-down", "terminated"})


def _by_id_or_parent(
    ids: Optional[Iterable[str]],
    parent_ids: Optional[Iterable[str]],
    id_filter: str,
    parent_filter: str,
):
    """Pick the filter to query with; ids win over parent ids."""
    if ids is not None:
        return id_filter, ids
    return parent_filter, parent_ids


class EC2Lookup(BaseLookup):
    """Lookups for EC2 resources."""

    service_name = "ec2"

    # =========================================================================
    # VPC and Subnets
    # =========================================================================

    def describe_vpcs(self, ids: Iterable[str]) -> List[Record]:
        """Non-default VPCs among ``ids``."""
        vpcs = self._filtered(
            "describe_vpcs", "Vpcs", "vpc-id", ids,
            resource_type=ResourceType.VPC.value,
        )
        return [v for v in vpcs if not v.get("IsDefault")]

    def describe_subnets(
        self,
        ids: Optional[Iterable[str]] = None,
        vpc_ids: Optional[Iterable[str]] = None,
    ) -> List[Record]:
        """Non-default subnets by id or VPC id."""
        name, values = _by_id_or_parent(ids, vpc_ids, "subnet-id", "vpc-id")
        subnets = self._filtered(
            "describe_subnets", "Subnets", name, values,
            resource_type=ResourceType.SUBNET.value,
        )
        return [s for s in subnets if not s.get("DefaultForAz")]

    def describe_security_groups(
        self,
        ids: Optional[Iterable[str]] = None,
        vpc_ids: Optional[Iterable[str]] = None,
    ) -> List[Record]:
        """Security groups other than the VPC default group."""
        name, values = _by_id_or_parent(ids, vpc_ids, "group-id", "vpc-id")
        groups = self._filtered(
            "describe_security_groups", "SecurityGroups", name, values,
            resource_type=ResourceType.SECURITY_GROUP.value,
        )
        return [g for g in groups if g.get("GroupName") != "default"]

    def describe_network_acls(
        self,
        ids: Optional[Iterable[str]] = None,
        subnet_ids: Optional[Iterable[str]] = None,
    ) -> List[Record]:
        """Non-default network ACLs by id or associated subnet id."""
        name, values = _by_id_or_parent(
            ids, subnet_ids, "network-acl-id", "association.subnet-id"
        )
        acls = self._filtered(
            "describe_network_acls", "NetworkAcls", name, values,
            resource_type=ResourceType.NETWORK_ACL.value,
        )
        return [a for a in acls if not a.get("IsDefault")]

    # =========================================================================
    # Routing
    # =========================================================================

    def describe_route_tables(
        self,
        ids: Optional[Iterable[str]] = None,
        vpc_ids: Optional[Iterable[str]] = None,
    ) -> List[Record]:
        """Route tables that are not the main table of their VPC."""
        name, values = _by_id_or_parent(ids, vpc_ids, "route-table-id", "vpc-id")
        tables = self._filtered(
            "describe_route_tables", "RouteTables", name, values,
            resource_type=ResourceType.ROUTE_TABLE.value,
        )
        return [
            t for t in tables
            if not any(a.get("Main") for a in t.get("Associations", []))
        ]

    def describe_route_table_associations(self, ids: Iterable[str]) -> List[Record]:
        """Non-main route table associations with the given association ids."""
        wanted = set(ids)
        tables = self._filtered(
            "describe_route_tables", "RouteTables",
            "association.route-table-association-id", wanted,
            resource_type=ResourceType.ROUTE_TABLE_ASSOCIATION.value,
        )
        associations = []
        for table in tables:
            for association in table.get("Associations", []):
                if association.get("Main"):
                    continue
                if association.get("RouteTableAssociationId") in wanted:
                    associations.append(association)
        return associations

    def describe_internet_gateways(
        self,
        ids: Optional[Iterable[str]] = None,
        vpc_ids: Optional[Iterable[str]] = None,
    ) -> List[Record]:
        name, values = _by_id_or_parent(
            ids, vpc_ids, "internet-gateway-id", "attachment.vpc-id"
        )
        return self._filtered(
            "describe_internet_gateways", "InternetGateways", name, values,
            resource_type=ResourceType.INTERNET_GATEWAY.value,
        )

    def describe_nat_gateways(
        self,
        ids: Optional[Iterable[str]] = None,
        vpc_ids: Optional[Iterable[str]] = None,
    ) -> List[Record]:
        """NAT gateways that are not deleting or deleted."""
        name, values = _by_id_or_parent(ids, vpc_ids, "nat-gateway-id", "vpc-id")
        # DescribeNatGateways names its filter parameter "Filter"
        gateways = self._filtered(
            "describe_nat_gateways", "NatGateways", name, values,
            filter_param="Filter",
            resource_type=ResourceType.NAT_GATEWAY.value,
        )
        return [g for g in gateways if g.get("State") not in GONE_STATES]

    def nat_gateway_states(self, ids: Iterable[str]) -> Dict[str, str]:
        """Map NAT gateway id to its current state, deleted included."""
        gateways = self._filtered(
            "describe_nat_gateways", "NatGateways", "nat-gateway-id", ids,
            filter_param="Filter",
            resource_type=ResourceType.NAT_GATEWAY.value,
        )
        return {g["NatGatewayId"]: g.get("State", "") for g in gateways}

    # =========================================================================
    # Compute and Interfaces
    # =========================================================================

    def describe_instances(
        self,
        ids: Optional[Iterable[str]] = None,
        vpc_ids: Optional[Iterable[str]] = None,
    ) -> List[Record]:
        """Instances that are not shutting down or terminated."""
        name, values = _by_id_or_parent(ids, vpc_ids, "instance-id", "vpc-id")
        reservations = self._filtered(
            "describe_instances", "Reservations", name, values,
            resource_type=ResourceType.INSTANCE.value,
        )
        instances = []
        for reservation in reservations:
            for instance in reservation.get("Instances", []):
                state = instance.get("State", {}).get("Name")
                if state not in TERMINATING_INSTANCE_STATES:
                    instances.append(instance)
        return instances

    def instance_states(self, ids: Iterable[str]) -> Dict[str, str]:
        """Map instance id to its current state name, terminated included."""
        reservations = self._filtered(
            "describe_instances", "Reservations", "instance-id", ids,
            resource_type=ResourceType.INSTANCE.value,
        )
        return {
            instance["InstanceId"]: instance.get("State", {}).get("Name", "")
            for reservation in reservations
            for instance in reservation.get("Instances", [])
        }

    def describe_network_interfaces(
        self,
        ids: Optional[Iterable[str]] = None,
        vpc_ids: Optional[Iterable[str]] = None,
    ) -> List[Record]:
        name, values = _by_id_or_parent(
            ids, vpc_ids, "network-interface-id", "vpc-id"
        )
        return self._filtered(
            "describe_network_interfaces", "NetworkInterfaces", name, values,
            resource_type=ResourceType.NETWORK_INTERFACE.value,
        )

    def describe_volumes(self, ids: Iterable[str]) -> List[Record]:
        """Volumes that are not attached to an instance."""
        volumes = self._filtered(
            "describe_volumes", "Volumes", "volume-id", ids,
            resource_type=ResourceType.VOLUME.value,
        )
        return [v for v in volumes if not v.get("Attachments")]

    # =========================================================================
    # Elastic IPs
    # =========================================================================

    def describe_addresses(
        self,
        allocation_ids: Optional[Iterable[str]] = None,
        association_ids: Optional[Iterable[str]] = None,
        network_interface_ids: Optional[Iterable[str]] = None,
    ) -> List[Record]:
        """Elastic IPs by allocation id, association id or network interface id."""
        if allocation_ids is not None:
            name, values = "allocation-id", allocation_ids
        elif association_ids is not None:
            name, values = "association-id", association_ids
        else:
            name, values = "network-interface-id", network_interface_ids
        return self._filtered(
            "describe_addresses", "Addresses", name, values,
            resource_type=ResourceType.ELASTIC_IP.value,
        )

    # =========================================================================
    # VPN
    # =========================================================================

    def describe_vpn_gateways(
        self,
        ids: Optional[Iterable[str]] = None,
        vpc_ids: Optional[Iterable[str]] = None,
    ) -> List[Record]:
        name, values = _by_id_or_parent(
            ids, vpc_ids, "vpn-gateway-id", "attachment.vpc-id"
        )
        gateways = self._filtered(
            "describe_vpn_gateways", "VpnGateways", name, values,
            resource_type=ResourceType.VPN_GATEWAY.value,
        )
        return [g for g in gateways if g.get("State") not in GONE_STATES]

    def describe_vpn_connections(
        self,
        ids: Optional[Iterable[str]] = None,
        vpn_gateway_ids: Optional[Iterable[str]] = None,
    ) -> List[Record]:
        name, values = _by_id_or_parent(
            ids, vpn_gateway_ids, "vpn-connection-id", "vpn-gateway-id"
        )
        connections = self._filtered(
            "describe_vpn_connections", "VpnConnections", name, values,
            resource_type=ResourceType.VPN_CONNECTION.value,
        )
        return [c for c in connections if c.get("State") not in GONE_STATES]

    def describe_customer_gateways(self, ids: Iterable[str]) -> List[Record]:
        gateways = self._filtered(
            "describe_customer_gateways", "CustomerGateways",
            "customer-gateway-id", ids,
            resource_type=ResourceType.CUSTOMER_GATEWAY.value,
        )
        return [g for g in gateways if g.get("State") not in GONE_STATES]
