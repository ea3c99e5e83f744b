"""
Deleters for Auto Scaling groups and launch configurations.

Groups are force-deleted, which also terminates their instances. AWS
removes the group asynchronously, and a launch configuration stays in use
until then, so the group deleter waits for the groups to disappear.
"""

import logging
from typing import List

from ..core.config import DeleteConfig
from ..core.resources import ResourceType
from .base import DeleteSummary, RecordDeleter, ResourceDeleter

logger = logging.getLogger(__name__)


class AutoScalingGroupDeleter(ResourceDeleter):
    resource_type = ResourceType.AUTOSCALING_GROUP
    service_name = "autoscaling"
    description = "AutoScaling Group"

    def _delete(self, config: DeleteConfig, summary: DeleteSummary) -> None:
        names = self._names()
        groups = self._resolve(
            config, summary,
            lambda: self.lookup.autoscaling.describe_auto_scaling_groups(names),
        )
        if groups is None:
            return
        found = {g["AutoScalingGroupName"] for g in groups}
        self._skip_missing(summary, found, names)

        deleting = []
        for name in names:
            if name in found and self._execute(
                config, summary, name, self.client.delete_auto_scaling_group,
                record=False, AutoScalingGroupName=name, ForceDelete=True,
            ):
                deleting.append(name)

        self._wait_for_deletion(config, summary, deleting, self._pending)

    def _pending(self, names: List[str]) -> List[str]:
        groups = self.lookup.autoscaling.describe_auto_scaling_groups(names)
        return [g["AutoScalingGroupName"] for g in groups]


class LaunchConfigurationDeleter(RecordDeleter):
    resource_type = ResourceType.LAUNCH_CONFIGURATION
    service_name = "autoscaling"
    description = "AutoScaling LaunchConfiguration"
    id_key = "LaunchConfigurationName"
    operation_name = "delete_launch_configuration"
    param_name = "LaunchConfigurationName"

    def _fetch(self, names):
        return self.lookup.autoscaling.describe_launch_configurations(names)
