"""
Resource Lookup Service
=======================

Read-only queries returning the live AWS records behind resource names.

:class:`ResourceLookup` bundles one lookup per service and is what graph
expansion and the deleters query.

Example
-------
>>> from tagreaper.core.aws_client import AWSClient
>>> from tagreaper.lookup import ResourceLookup
>>>
>>> lookup = ResourceLookup(AWSClient(region="us-east-1"))
>>> lookup.ec2.describe_subnets(vpc_ids=["vpc-0abc"])
"""

from __future__ import annotations

from tagreaper.lookup.autoscaling import AutoScalingLookup
from tagreaper.lookup.base import BaseLookup, chunked, unique
from tagreaper.lookup.ec2 import EC2Lookup
from tagreaper.lookup.elb import ELBLookup
from tagreaper.lookup.iam import IAMLookup
from tagreaper.lookup.route53 import Route53Lookup, zone_id
from tagreaper.lookup.s3 import S3Lookup


class ResourceLookup:
    """
    Per-service lookups sharing one AWSClient.

    Parameters
    ----------
    aws_client : AWSClient
        Client used by every lookup.
    """

    def __init__(self, aws_client) -> None:
        self.aws_client = aws_client
        self.ec2 = EC2Lookup(aws_client)
        self.autoscaling = AutoScalingLookup(aws_client)
        self.elb = ELBLookup(aws_client)
        self.iam = IAMLookup(aws_client)
        self.route53 = Route53Lookup(aws_client)
        self.s3 = S3Lookup(aws_client)

    def __repr__(self) -> str:
        return f"ResourceLookup(region='{self.aws_client.region}')"


__all__ = [
    "AutoScalingLookup",
    "BaseLookup",
    "EC2Lookup",
    "ELBLookup",
    "IAMLookup",
    "ResourceLookup",
    "Route53Lookup",
    "S3Lookup",
    "chunked",
    "unique",
    "zone_id",
]
