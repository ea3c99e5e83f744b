"""
Resource Types
==============

The closed set of AWS resource types TagReaper knows how to delete, plus
helpers for the ``ResourceIdentifierSet`` mapping threaded through graph
expansion and deletion.

A ``ResourceIdentifierSet`` maps a :class:`ResourceType` to a list of names.
Lists are ordered and may contain duplicates; deleters tolerate both.

Example
-------
>>> from tagreaper.core.resources import ResourceType, add_names
>>>
>>> resources = {}
>>> add_names(resources, ResourceType.VPC, ["vpc-1"])
>>> resources[ResourceType.VPC]
['vpc-1']
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Mapping


class ResourceType(str, Enum):
    """AWS resource types, valued with their CloudFormation type names."""

    # Top-level types, deleted by the orchestrator
    AUTOSCALING_GROUP = "AWS::AutoScaling::AutoScalingGroup"
    LAUNCH_CONFIGURATION = "AWS::AutoScaling::LaunchConfiguration"
    CUSTOMER_GATEWAY = "AWS::EC2::CustomerGateway"
    ELASTIC_IP = "AWS::EC2::EIP"
    EIP_ASSOCIATION = "AWS::EC2::EIPAssociation"
    INSTANCE = "AWS::EC2::Instance"
    INTERNET_GATEWAY = "AWS::EC2::InternetGateway"
    NAT_GATEWAY = "AWS::EC2::NatGateway"
    NETWORK_ACL = "AWS::EC2::NetworkAcl"
    NETWORK_INTERFACE = "AWS::EC2::NetworkInterface"
    ROUTE_TABLE = "AWS::EC2::RouteTable"
    ROUTE_TABLE_ASSOCIATION = "AWS::EC2::SubnetRouteTableAssociation"
    SECURITY_GROUP = "AWS::EC2::SecurityGroup"
    SUBNET = "AWS::EC2::Subnet"
    VOLUME = "AWS::EC2::Volume"
    VPC = "AWS::EC2::VPC"
    VPN_CONNECTION = "AWS::EC2::VPNConnection"
    VPN_GATEWAY = "AWS::EC2::VPNGateway"
    LOAD_BALANCER = "AWS::ElasticLoadBalancing::LoadBalancer"
    INSTANCE_PROFILE = "AWS::IAM::InstanceProfile"
    ROLE = "AWS::IAM::Role"
    HOSTED_ZONE = "AWS::Route53::HostedZone"
    BUCKET = "AWS::S3::Bucket"

    # Sub-resources, deleted by their parent's deleter
    INTERNET_GATEWAY_ATTACHMENT = "AWS::EC2::VPCGatewayAttachment"
    NETWORK_ACL_ENTRY = "AWS::EC2::NetworkAclEntry"
    NETWORK_INTERFACE_ATTACHMENT = "AWS::EC2::NetworkInterfaceAttachment"
    ROUTE = "AWS::EC2::Route"
    SECURITY_GROUP_RULE = "AWS::EC2::SecurityGroupRule"
    VPC_CIDR_BLOCK_ASSOCIATION = "AWS::EC2::VPCCidrBlock"
    VPN_CONNECTION_ROUTE = "AWS::EC2::VPNConnectionRoute"
    VPN_GATEWAY_ATTACHMENT = "AWS::EC2::VPNGatewayAttachment"
    ROLE_POLICY = "AWS::IAM::Policy"
    RECORD_SET = "AWS::Route53::RecordSet"
    OBJECT = "AWS::S3::Object"

    def __str__(self) -> str:
        return self.value


SUB_RESOURCE_TYPES = frozenset(
    {
        ResourceType.INTERNET_GATEWAY_ATTACHMENT,
        ResourceType.NETWORK_ACL_ENTRY,
        ResourceType.NETWORK_INTERFACE_ATTACHMENT,
        ResourceType.ROUTE,
        ResourceType.SECURITY_GROUP_RULE,
        ResourceType.VPC_CIDR_BLOCK_ASSOCIATION,
        ResourceType.VPN_CONNECTION_ROUTE,
        ResourceType.VPN_GATEWAY_ATTACHMENT,
        ResourceType.ROLE_POLICY,
        ResourceType.RECORD_SET,
        ResourceType.OBJECT,
    }
)

ResourceIdentifierSet = Dict[ResourceType, List[str]]


def add_names(
    resources: ResourceIdentifierSet,
    resource_type: ResourceType,
    names: Iterable[str],
    unique: bool = False,
) -> List[str]:
    """
    Append names under ``resource_type``.

    Empty names are dropped. With ``unique`` set, names already present are
    not appended again.

    Returns
    -------
    list of str
        The names actually appended.
    """
    bucket = resources.setdefault(resource_type, [])
    seen = set(bucket) if unique else set()
    added = []
    for name in names:
        if not name or (unique and name in seen):
            continue
        bucket.append(name)
        added.append(name)
        seen.add(name)
    return added


def merge(
    target: ResourceIdentifierSet,
    other: Mapping[ResourceType, Iterable[str]],
) -> ResourceIdentifierSet:
    """Append every name of ``other`` into ``target`` without duplicates."""
    for resource_type, names in other.items():
        add_names(target, resource_type, names, unique=True)
    return target


def count_names(resources: Mapping[ResourceType, Iterable[str]]) -> int:
    """Count distinct names across all types."""
    return sum(len(set(names)) for names in resources.values())
