"""
Deleters for IAM instance profiles and roles.

An instance profile cannot be deleted while roles are attached to it, so
its roles are removed (not deleted) first. A role cannot be deleted while
it has inline policies, so those are deleted first.
"""

import logging

from ..core.resources import ResourceType
from .base import RecordDeleter, SubResourceDeleter

logger = logging.getLogger(__name__)


class RolePolicyDeleter(SubResourceDeleter):
    """Deletes the inline policies of one role."""

    resource_type = ResourceType.ROLE_POLICY
    parent_resource_type = ResourceType.ROLE
    service_name = "iam"
    description = "IAM RolePolicy"
    operation_name = "delete_role_policy"


class InstanceProfileDeleter(RecordDeleter):
    resource_type = ResourceType.INSTANCE_PROFILE
    service_name = "iam"
    description = "IAM InstanceProfile"
    id_key = "InstanceProfileName"
    operation_name = "delete_instance_profile"
    param_name = "InstanceProfileName"

    def _fetch(self, names):
        return self.lookup.iam.get_instance_profiles(names)

    def _clear_blocking(self, config, summary, record):
        profile_name = record["InstanceProfileName"]
        for role in record.get("Roles", []):
            removed = self._execute(
                config,
                summary,
                profile_name,
                self.client.remove_role_from_instance_profile,
                record=False,
                InstanceProfileName=profile_name,
                RoleName=role["RoleName"],
            )
            if not removed:
                # The failure is already recorded against the profile
                return False
            logger.info(f"Removed role {role['RoleName']} from instance profile {profile_name}")
        return True


class RoleDeleter(RecordDeleter):
    resource_type = ResourceType.ROLE
    service_name = "iam"
    description = "IAM Role"
    id_key = "RoleName"
    operation_name = "delete_role"
    param_name = "RoleName"

    def _fetch(self, names):
        return self.lookup.iam.get_roles(names)

    def _clear_blocking(self, config, summary, record):
        role_name = record["RoleName"]
        policy_names = self._resolve(
            config, summary, lambda: self.lookup.iam.list_role_policy_names(role_name)
        )
        if not policy_names:
            return
        deleter = RolePolicyDeleter(self.aws_client, role_name, lookup=self.lookup)
        for policy_name in policy_names:
            deleter.add_resource(policy_name, RoleName=role_name, PolicyName=policy_name)
        self._delete_children(config, summary, deleter)
