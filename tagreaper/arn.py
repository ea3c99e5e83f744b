"""
ARN Translation
===============

Translates between AWS ARNs and ``(ResourceType, name)`` pairs.

This is only used where identifiers enter or leave TagReaper: reading the
ARNs to delete, and reporting what was deleted. Graph expansion and the
deleters work on bare names.

Example
-------
>>> from tagreaper.arn import build_arn, parse_arn
>>>
>>> parse_arn("arn:aws:ec2:us-east-1:123456789012:vpc/vpc-0abc")
(<ResourceType.VPC: 'AWS::EC2::VPC'>, 'vpc-0abc')
>>> build_arn(ResourceType.BUCKET, "my-bucket", "us-east-1", "123456789012")
'arn:aws:s3:::my-bucket'
"""

from __future__ import annotations

import json
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from tagreaper.core.resources import ResourceIdentifierSet, ResourceType, add_names

logger = logging.getLogger(__name__)

# EC2 ARN resource prefixes, as in arn:aws:ec2:<region>:<account>:<prefix>/<id>
EC2_RESOURCE_PREFIXES: Dict[str, ResourceType] = {
    "customer-gateway": ResourceType.CUSTOMER_GATEWAY,
    "elastic-ip": ResourceType.ELASTIC_IP,
    "instance": ResourceType.INSTANCE,
    "internet-gateway": ResourceType.INTERNET_GATEWAY,
    "natgateway": ResourceType.NAT_GATEWAY,
    "network-acl": ResourceType.NETWORK_ACL,
    "network-interface": ResourceType.NETWORK_INTERFACE,
    "route-table": ResourceType.ROUTE_TABLE,
    "security-group": ResourceType.SECURITY_GROUP,
    "subnet": ResourceType.SUBNET,
    "volume": ResourceType.VOLUME,
    "vpc": ResourceType.VPC,
    "vpn-connection": ResourceType.VPN_CONNECTION,
    "vpn-gateway": ResourceType.VPN_GATEWAY,
}
EC2_PREFIX_BY_TYPE = {v: k for k, v in EC2_RESOURCE_PREFIXES.items()}

IAM_RESOURCE_PREFIXES: Dict[str, ResourceType] = {
    "instance-profile": ResourceType.INSTANCE_PROFILE,
    "role": ResourceType.ROLE,
}
IAM_PREFIX_BY_TYPE = {v: k for k, v in IAM_RESOURCE_PREFIXES.items()}

AUTOSCALING_RESOURCE_PREFIXES: Dict[str, Tuple[ResourceType, str]] = {
    "autoScalingGroup": (ResourceType.AUTOSCALING_GROUP, "autoScalingGroupName/"),
    "launchConfiguration": (
        ResourceType.LAUNCH_CONFIGURATION,
        "launchConfigurationName/",
    ),
}


def parse_arn(arn: str) -> Optional[Tuple[ResourceType, str]]:
    """
    Split an ARN into its resource type and resource name.

    Parameters
    ----------
    arn : str
        ARN of a supported resource.

    Returns
    -------
    tuple of (ResourceType, str) or None
        None for malformed ARNs and resource kinds TagReaper does not delete
        (application/network load balancers, S3 object ARNs, ...).

    Examples
    --------
    >>> parse_arn("arn:aws:iam::123456789012:role/service/deployer")
    (<ResourceType.ROLE: 'AWS::IAM::Role'>, 'deployer')
    >>> parse_arn("arn:aws:route53:::hostedzone/Z123") is not None
    True
    """
    parts = arn.split(":", 5)
    if len(parts) != 6 or parts[0] != "arn":
        return None
    service, resource = parts[2], parts[5]
    if not resource:
        return None

    if service == "ec2":
        prefix, _, name = resource.partition("/")
        resource_type = EC2_RESOURCE_PREFIXES.get(prefix)
        return (resource_type, name) if resource_type and name else None

    if service == "iam":
        prefix, _, path_and_name = resource.partition("/")
        resource_type = IAM_RESOURCE_PREFIXES.get(prefix)
        name = path_and_name.rsplit("/", 1)[-1]
        return (resource_type, name) if resource_type and name else None

    if service == "autoscaling":
        kind = resource.split(":", 1)[0]
        if kind not in AUTOSCALING_RESOURCE_PREFIXES:
            return None
        resource_type, marker = AUTOSCALING_RESOURCE_PREFIXES[kind]
        _, found, name = resource.partition(marker)
        return (resource_type, name) if found and name else None

    if service == "elasticloadbalancing":
        prefix, _, name = resource.partition("/")
        # loadbalancer/app/... and loadbalancer/net/... are ELBv2
        if prefix != "loadbalancer" or not name or "/" in name:
            return None
        return ResourceType.LOAD_BALANCER, name

    if service == "route53":
        prefix, _, name = resource.partition("/")
        if prefix != "hostedzone" or not name:
            return None
        return ResourceType.HOSTED_ZONE, name

    if service == "s3":
        if "/" in resource:
            return None
        return ResourceType.BUCKET, resource

    return None


def build_arn(
    resource_type: ResourceType,
    name: str,
    region: str,
    account_id: str,
    partition: str = "aws",
) -> Optional[str]:
    """
    Build the ARN of a named resource.

    Returns None for types without an ARN of their own (EIP and route table
    associations, sub-resources).

    Example
    -------
    >>> build_arn(ResourceType.SUBNET, "subnet-1", "eu-west-1", "123456789012")
    'arn:aws:ec2:eu-west-1:123456789012:subnet/subnet-1'
    """
    if resource_type in EC2_PREFIX_BY_TYPE:
        prefix = EC2_PREFIX_BY_TYPE[resource_type]
        return f"arn:{partition}:ec2:{region}:{account_id}:{prefix}/{name}"
    if resource_type in IAM_PREFIX_BY_TYPE:
        prefix = IAM_PREFIX_BY_TYPE[resource_type]
        return f"arn:{partition}:iam::{account_id}:{prefix}/{name}"
    if resource_type == ResourceType.AUTOSCALING_GROUP:
        return (
            f"arn:{partition}:autoscaling:{region}:{account_id}:"
            f"autoScalingGroup:*:autoScalingGroupName/{name}"
        )
    if resource_type == ResourceType.LAUNCH_CONFIGURATION:
        return (
            f"arn:{partition}:autoscaling:{region}:{account_id}:"
            f"launchConfiguration:*:launchConfigurationName/{name}"
        )
    if resource_type == ResourceType.LOAD_BALANCER:
        return f"arn:{partition}:elasticloadbalancing:{region}:{account_id}:loadbalancer/{name}"
    if resource_type == ResourceType.HOSTED_ZONE:
        return f"arn:{partition}:route53:::hostedzone/{name}"
    if resource_type == ResourceType.BUCKET:
        return f"arn:{partition}:s3:::{name}"
    return None


def instance_profile_name(name_or_arn: str) -> str:
    """
    Return the bare instance profile name from a name or an ARN.

    Examples
    --------
    >>> instance_profile_name("web-profile")
    'web-profile'
    >>> instance_profile_name("arn:aws:iam::123456789012:instance-profile/web-profile")
    'web-profile'
    """
    _, _, tail = name_or_arn.rpartition("instance-profile/")
    return tail.rsplit("/", 1)[-1]


def read_arns(text: str) -> List[str]:
    """
    Read ARNs from ``{"ARNs": [...]}``, a JSON list, or one ARN per line.

    Raises
    ------
    ValueError
        If the text looks like JSON but is not one of the accepted shapes.

    Examples
    --------
    >>> read_arns('{"ARNs": ["arn:aws:s3:::a"]}')
    ['arn:aws:s3:::a']
    >>> read_arns("arn:aws:s3:::a\\n\\narn:aws:s3:::b\\n")
    ['arn:aws:s3:::a', 'arn:aws:s3:::b']
    """
    stripped = text.strip()
    if not stripped:
        return []
    if stripped[0] not in "{[":
        return [line.strip() for line in stripped.splitlines() if line.strip()]

    try:
        data = json.loads(stripped)
    except json.JSONDecodeError as e:
        raise ValueError(f"Input is not valid JSON: {e}") from e
    if isinstance(data, dict):
        data = data.get("ARNs")
    if not isinstance(data, list) or not all(isinstance(a, str) for a in data):
        raise ValueError('Expected {"ARNs": [...]} or a JSON list of ARN strings')
    return data


def bucket_arns(arns: Iterable[str]) -> ResourceIdentifierSet:
    """
    Group ARNs into a resource identifier set.

    Empty lines and repeated ARNs are skipped; unsupported ARNs are logged
    and skipped.
    """
    resources: ResourceIdentifierSet = {}
    seen = set()
    for arn in arns:
        arn = arn.strip()
        if not arn or arn in seen:
            continue
        seen.add(arn)
        parsed = parse_arn(arn)
        if parsed is None:
            logger.warning(f"Skipping unsupported ARN: {arn}")
            continue
        resource_type, name = parsed
        add_names(resources, resource_type, [name], unique=True)
    return resources
