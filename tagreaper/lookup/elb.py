"""
Classic Load Balancer Lookups
=============================

DescribeLoadBalancers fails the whole call when one name is unknown, so
the balancers are listed and matched by name instead.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from tagreaper.core.resources import ResourceType
from tagreaper.lookup.base import BaseLookup, unique

Record = Dict[str, Any]


class ELBLookup(BaseLookup):
    """Lookups for classic load balancers."""

    service_name = "elb"

    def describe_load_balancers(self, names: Iterable[str]) -> List[Record]:
        wanted = set(unique(names))
        if not wanted:
            return []
        balancers = self._collect(
            "describe_load_balancers", "LoadBalancerDescriptions",
            resource_type=ResourceType.LOAD_BALANCER.value,
        )
        return [b for b in balancers if b["LoadBalancerName"] in wanted]
