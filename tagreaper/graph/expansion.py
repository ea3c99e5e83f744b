"""
Graph Expansion
===============

Fills a resource identifier set with the dependents of the resources it
already names, so a tagged VPC pulls in its untagged subnets, route
tables, gateways and instances.

The discovery forest is walked level by level. At each node whose type has
names in the set, the expansion rule for that type queries AWS and appends
what it finds under the child types. Appending is unique and preserves
order, so running the expansion again on its own output adds nothing new.

Example
-------
>>> from tagreaper.graph.expansion import fill_dependency_graph
>>>
>>> resources = {ResourceType.VPC: ["vpc-0abc"]}
>>> fill_dependency_graph(resources, lookup)
>>> resources[ResourceType.SUBNET]
['subnet-0123', 'subnet-0456']
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional, Sequence, Set

from tagreaper.arn import instance_profile_name
from tagreaper.core.resources import ResourceIdentifierSet, ResourceType, add_names
from tagreaper.graph.dependency import DISCOVERY_FOREST, DependencyNode, iter_levels

logger = logging.getLogger(__name__)

RT = ResourceType

# (resources, names of the parent type, lookup)
ExpansionRule = Callable[[ResourceIdentifierSet, List[str], Any], None]


def _add(resources: ResourceIdentifierSet, resource_type: ResourceType, names) -> None:
    added = add_names(resources, resource_type, names, unique=True)
    if added:
        logger.debug(f"Discovered {len(added)} {resource_type.value}: {added}")


def _add_profiles_and_roles(
    resources: ResourceIdentifierSet,
    profile_names: Sequence[str],
    lookup,
) -> None:
    """Append instance profiles and the roles they carry."""
    profile_names = [p for p in profile_names if p]
    if not profile_names:
        return
    _add(resources, RT.INSTANCE_PROFILE, profile_names)
    roles = [
        role["RoleName"]
        for profile in lookup.iam.get_instance_profiles(profile_names)
        for role in profile.get("Roles", [])
    ]
    _add(resources, RT.ROLE, roles)


# =============================================================================
# Expansion Rules
# =============================================================================


def expand_vpc(resources: ResourceIdentifierSet, names: List[str], lookup) -> None:
    """Replace VPC names with the live non-default VPCs and add their contents."""
    vpc_ids = [vpc["VpcId"] for vpc in lookup.ec2.describe_vpcs(names)]
    resources[RT.VPC] = vpc_ids
    if not vpc_ids:
        return

    ec2 = lookup.ec2
    _add(resources, RT.VPN_GATEWAY,
         [g["VpnGatewayId"] for g in ec2.describe_vpn_gateways(vpc_ids=vpc_ids)])
    _add(resources, RT.NAT_GATEWAY,
         [g["NatGatewayId"] for g in ec2.describe_nat_gateways(vpc_ids=vpc_ids)])
    _add(resources, RT.INTERNET_GATEWAY,
         [g["InternetGatewayId"] for g in ec2.describe_internet_gateways(vpc_ids=vpc_ids)])
    _add(resources, RT.INSTANCE,
         [i["InstanceId"] for i in ec2.describe_instances(vpc_ids=vpc_ids)])
    _add(resources, RT.SUBNET,
         [s["SubnetId"] for s in ec2.describe_subnets(vpc_ids=vpc_ids)])
    _add(resources, RT.NETWORK_INTERFACE,
         [n["NetworkInterfaceId"] for n in ec2.describe_network_interfaces(vpc_ids=vpc_ids)])
    _add(resources, RT.SECURITY_GROUP,
         [g["GroupId"] for g in ec2.describe_security_groups(vpc_ids=vpc_ids)])
    _add(resources, RT.ROUTE_TABLE,
         [t["RouteTableId"] for t in ec2.describe_route_tables(vpc_ids=vpc_ids)])


def expand_vpn_gateway(resources: ResourceIdentifierSet, names: List[str], lookup) -> None:
    connections = lookup.ec2.describe_vpn_connections(vpn_gateway_ids=names)
    _add(resources, RT.VPN_CONNECTION, [c["VpnConnectionId"] for c in connections])


def expand_subnet(resources: ResourceIdentifierSet, names: List[str], lookup) -> None:
    acls = lookup.ec2.describe_network_acls(subnet_ids=names)
    _add(resources, RT.NETWORK_ACL, [a["NetworkAclId"] for a in acls])


def expand_instance(resources: ResourceIdentifierSet, names: List[str], lookup) -> None:
    profiles = []
    for instance in lookup.ec2.describe_instances(ids=names):
        arn = instance.get("IamInstanceProfile", {}).get("Arn")
        if arn:
            profiles.append(instance_profile_name(arn))
    _add_profiles_and_roles(resources, profiles, lookup)


def expand_network_interface(resources: ResourceIdentifierSet, names: List[str], lookup) -> None:
    addresses = lookup.ec2.describe_addresses(network_interface_ids=names)
    _add(resources, RT.ELASTIC_IP, [a.get("AllocationId") for a in addresses])
    _add(resources, RT.EIP_ASSOCIATION, [a.get("AssociationId") for a in addresses])


def expand_route_table(resources: ResourceIdentifierSet, names: List[str], lookup) -> None:
    associations = [
        association.get("RouteTableAssociationId")
        for table in lookup.ec2.describe_route_tables(ids=names)
        for association in table.get("Associations", [])
        if not association.get("Main")
    ]
    _add(resources, RT.ROUTE_TABLE_ASSOCIATION, associations)


def expand_autoscaling_group(resources: ResourceIdentifierSet, names: List[str], lookup) -> None:
    configurations = []
    balancers = []
    for group in lookup.autoscaling.describe_auto_scaling_groups(names):
        configurations.append(group.get("LaunchConfigurationName"))
        balancers.extend(group.get("LoadBalancerNames", []))
    _add(resources, RT.LAUNCH_CONFIGURATION, configurations)
    _add(resources, RT.LOAD_BALANCER, balancers)


def expand_launch_configuration(resources: ResourceIdentifierSet, names: List[str], lookup) -> None:
    # IamInstanceProfile holds either a profile name or its ARN
    profiles = [
        instance_profile_name(configuration["IamInstanceProfile"])
        for configuration in lookup.autoscaling.describe_launch_configurations(names)
        if configuration.get("IamInstanceProfile")
    ]
    _add_profiles_and_roles(resources, profiles, lookup)


EXPANSION_RULES: Mapping[ResourceType, ExpansionRule] = MappingProxyType(
    {
        RT.VPC: expand_vpc,
        RT.VPN_GATEWAY: expand_vpn_gateway,
        RT.SUBNET: expand_subnet,
        RT.INSTANCE: expand_instance,
        RT.NETWORK_INTERFACE: expand_network_interface,
        RT.ROUTE_TABLE: expand_route_table,
        RT.AUTOSCALING_GROUP: expand_autoscaling_group,
        RT.LAUNCH_CONFIGURATION: expand_launch_configuration,
    }
)


def fill_dependency_graph(
    resources: ResourceIdentifierSet,
    lookup,
    forest: Optional[Sequence[DependencyNode]] = None,
    rules: Mapping[ResourceType, ExpansionRule] = EXPANSION_RULES,
) -> ResourceIdentifierSet:
    """
    Expand ``resources`` in place with the dependents of the named resources.

    Parameters
    ----------
    resources : ResourceIdentifierSet
        Names to start from. Updated in place.
    lookup : ResourceLookup
        Source of the live records.
    forest : sequence of DependencyNode, optional
        Discovery forest to walk. Defaults to ``DISCOVERY_FOREST``.
    rules : mapping, optional
        Expansion rule per parent type.

    Returns
    -------
    ResourceIdentifierSet
        ``resources``, for chaining.

    Raises
    ------
    ResourceLookupError
        If a lookup fails.
    """
    if forest is None:
        forest = DISCOVERY_FOREST

    for depth, level in enumerate(iter_levels(forest)):
        expanded: Set[ResourceType] = set()
        for node in level:
            resource_type = node.resource_type
            if resource_type in expanded or not node.children:
                continue
            rule = rules.get(resource_type)
            names = list(dict.fromkeys(resources.get(resource_type, [])))
            if rule is None or not names:
                continue
            expanded.add(resource_type)
            logger.debug(f"Expanding {len(names)} {resource_type.value} at depth {depth}")
            rule(resources, names, lookup)

    return resources
