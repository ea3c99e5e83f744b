"""
Auto Scaling Lookups
====================

Auto Scaling describe calls take names directly and silently skip unknown
ones, so names are sent as-is in chunks of ``NAME_CHUNK_SIZE``.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from tagreaper.core.resources import ResourceType
from tagreaper.lookup.base import BaseLookup, chunked, unique

Record = Dict[str, Any]

NAME_CHUNK_SIZE = 50


class AutoScalingLookup(BaseLookup):
    """Lookups for Auto Scaling groups and launch configurations."""

    service_name = "autoscaling"

    def describe_auto_scaling_groups(self, names: Iterable[str]) -> List[Record]:
        groups: List[Record] = []
        for chunk in chunked(unique(names), NAME_CHUNK_SIZE):
            groups.extend(
                self._collect(
                    "describe_auto_scaling_groups", "AutoScalingGroups",
                    resource_type=ResourceType.AUTOSCALING_GROUP.value,
                    AutoScalingGroupNames=chunk,
                )
            )
        return groups

    def describe_launch_configurations(self, names: Iterable[str]) -> List[Record]:
        configurations: List[Record] = []
        for chunk in chunked(unique(names), NAME_CHUNK_SIZE):
            configurations.extend(
                self._collect(
                    "describe_launch_configurations", "LaunchConfigurations",
                    resource_type=ResourceType.LAUNCH_CONFIGURATION.value,
                    LaunchConfigurationNames=chunk,
                )
            )
        return configurations
