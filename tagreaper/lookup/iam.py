"""
IAM Lookups
===========

IAM list calls cannot filter by name, so profiles and roles are listed in
full and matched locally. Lookups of names that do not exist return nothing.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from tagreaper.core.resources import ResourceType
from tagreaper.lookup.base import BaseLookup, unique

Record = Dict[str, Any]


class IAMLookup(BaseLookup):
    """Lookups for instance profiles, roles and inline role policies."""

    service_name = "iam"

    def get_instance_profiles(self, names: Iterable[str]) -> List[Record]:
        """Instance profiles named in ``names``, in listing order."""
        wanted = set(unique(names))
        if not wanted:
            return []
        profiles = self._collect(
            "list_instance_profiles", "InstanceProfiles",
            resource_type=ResourceType.INSTANCE_PROFILE.value,
        )
        return [p for p in profiles if p["InstanceProfileName"] in wanted]

    def get_roles(self, names: Iterable[str]) -> List[Record]:
        """Roles named in ``names``, in listing order."""
        wanted = set(unique(names))
        if not wanted:
            return []
        roles = self._collect(
            "list_roles", "Roles", resource_type=ResourceType.ROLE.value
        )
        return [r for r in roles if r["RoleName"] in wanted]

    def list_role_policy_names(self, role_name: str) -> List[str]:
        """Names of the inline policies of ``role_name``."""
        return self._collect(
            "list_role_policies", "PolicyNames",
            resource_type=ResourceType.ROLE_POLICY.value,
            RoleName=role_name,
        )
