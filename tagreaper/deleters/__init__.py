"""
Resource Deleters
=================

One deleter class per resource type, selected through ``DELETER_REGISTRY``.

Example
-------
>>> from tagreaper.deleters import init_resource_deleter
>>>
>>> deleter = init_resource_deleter(ResourceType.SUBNET, aws_client)
>>> deleter.add_resource_names("subnet-1", "subnet-2")
>>> summary = deleter.delete_resources(config)
"""

from types import MappingProxyType
from typing import Mapping, Optional, Type

from ..core.resources import ResourceType
from ..lookup import ResourceLookup
from .autoscaling import AutoScalingGroupDeleter, LaunchConfigurationDeleter
from .base import (
    DeleteResult,
    DeleteStatus,
    DeleteSummary,
    RecordDeleter,
    ResourceDeleter,
    SubResourceDeleter,
)
from .ec2 import (
    CustomerGatewayDeleter,
    EIPAssociationDeleter,
    ElasticIPDeleter,
    InstanceDeleter,
    InternetGatewayDeleter,
    NatGatewayDeleter,
    NetworkAclDeleter,
    NetworkInterfaceDeleter,
    RouteTableAssociationDeleter,
    RouteTableDeleter,
    SecurityGroupDeleter,
    SubnetDeleter,
    VolumeDeleter,
    VpcDeleter,
    VpnConnectionDeleter,
    VpnGatewayDeleter,
)
from .elb import LoadBalancerDeleter
from .iam import InstanceProfileDeleter, RoleDeleter
from .route53 import HostedZoneDeleter
from .s3 import BucketDeleter

DELETER_REGISTRY: Mapping[ResourceType, Type[ResourceDeleter]] = MappingProxyType(
    {
        ResourceType.AUTOSCALING_GROUP: AutoScalingGroupDeleter,
        ResourceType.LAUNCH_CONFIGURATION: LaunchConfigurationDeleter,
        ResourceType.CUSTOMER_GATEWAY: CustomerGatewayDeleter,
        ResourceType.ELASTIC_IP: ElasticIPDeleter,
        ResourceType.EIP_ASSOCIATION: EIPAssociationDeleter,
        ResourceType.INSTANCE: InstanceDeleter,
        ResourceType.INTERNET_GATEWAY: InternetGatewayDeleter,
        ResourceType.NAT_GATEWAY: NatGatewayDeleter,
        ResourceType.NETWORK_ACL: NetworkAclDeleter,
        ResourceType.NETWORK_INTERFACE: NetworkInterfaceDeleter,
        ResourceType.ROUTE_TABLE: RouteTableDeleter,
        ResourceType.ROUTE_TABLE_ASSOCIATION: RouteTableAssociationDeleter,
        ResourceType.SECURITY_GROUP: SecurityGroupDeleter,
        ResourceType.SUBNET: SubnetDeleter,
        ResourceType.VOLUME: VolumeDeleter,
        ResourceType.VPC: VpcDeleter,
        ResourceType.VPN_CONNECTION: VpnConnectionDeleter,
        ResourceType.VPN_GATEWAY: VpnGatewayDeleter,
        ResourceType.LOAD_BALANCER: LoadBalancerDeleter,
        ResourceType.INSTANCE_PROFILE: InstanceProfileDeleter,
        ResourceType.ROLE: RoleDeleter,
        ResourceType.HOSTED_ZONE: HostedZoneDeleter,
        ResourceType.BUCKET: BucketDeleter,
    }
)


def init_resource_deleter(
    resource_type: ResourceType,
    aws_client,
    lookup: Optional[ResourceLookup] = None,
    registry: Mapping[ResourceType, Type[ResourceDeleter]] = DELETER_REGISTRY,
) -> ResourceDeleter:
    """
    Build the deleter registered for ``resource_type``.

    Raises:
        ValueError: No deleter is registered for the type
    """
    try:
        deleter_class = registry[resource_type]
    except KeyError:
        raise ValueError(f"No deleter registered for {resource_type}") from None
    return deleter_class(aws_client, lookup=lookup)


__all__ = [
    "DELETER_REGISTRY",
    "DeleteResult",
    "DeleteStatus",
    "DeleteSummary",
    "RecordDeleter",
    "ResourceDeleter",
    "SubResourceDeleter",
    "init_resource_deleter",
]
