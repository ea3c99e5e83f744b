"""
S3 Lookups
==========
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from tagreaper.core.resources import ResourceType
from tagreaper.lookup.base import BaseLookup, unique

Record = Dict[str, Any]


class S3Lookup(BaseLookup):
    """Lookups for buckets and their objects."""

    service_name = "s3"

    def get_buckets(self, names: Iterable[str]) -> List[Record]:
        """Buckets owned by the account whose names are in ``names``."""
        wanted = set(unique(names))
        if not wanted:
            return []
        buckets = self._collect(
            "list_buckets", "Buckets", resource_type=ResourceType.BUCKET.value
        )
        return [b for b in buckets if b["Name"] in wanted]

    def list_object_keys(self, bucket: str) -> List[str]:
        """Every object key in ``bucket``; empty if the bucket is gone."""
        objects = self._collect(
            "list_objects_v2", "Contents",
            resource_type=ResourceType.OBJECT.value,
            Bucket=bucket,
        )
        return [o["Key"] for o in objects]
