"""
Deleters for S3 buckets and their objects.

A bucket must be empty before it can be deleted; its objects are removed
with DeleteObjects in batches of up to 1000 keys.
"""

import logging

from botocore.exceptions import ClientError

from ..core.config import DeleteConfig
from ..core.resources import ResourceType
from ..core.retry import error_code, error_message, is_not_found
from ..lookup import chunked
from .base import DeleteSummary, RecordDeleter, SubResourceDeleter

logger = logging.getLogger(__name__)

DELETE_OBJECTS_BATCH_SIZE = 1000


class ObjectDeleter(SubResourceDeleter):
    """Deletes objects of one bucket; names are object keys."""

    resource_type = ResourceType.OBJECT
    parent_resource_type = ResourceType.BUCKET
    service_name = "s3"
    description = "S3 Object"

    def _delete(self, config: DeleteConfig, summary: DeleteSummary) -> None:
        bucket = self.parent_name
        for chunk in chunked(self._names(), DELETE_OBJECTS_BATCH_SIZE):
            try:
                response = config.call(
                    self.client.delete_objects,
                    Bucket=bucket,
                    Delete={"Objects": [{"Key": key} for key in chunk], "Quiet": True},
                )
            except ClientError as e:
                if is_not_found(e):
                    self._skip_missing(summary, set(), chunk)
                    continue
                for key in chunk:
                    self._fail(config, summary, key, error_code(e), error_message(e), error=e)
                continue
            finally:
                config.pause()

            errors = {err["Key"]: err for err in response.get("Errors", [])}
            for key in chunk:
                if key in errors:
                    err = errors[key]
                    self._fail(config, summary, key, err.get("Code", "Unknown"), err.get("Message", ""))
                else:
                    self._record_success(config, summary, key)


class BucketDeleter(RecordDeleter):
    resource_type = ResourceType.BUCKET
    service_name = "s3"
    description = "S3 Bucket"
    id_key = "Name"
    operation_name = "delete_bucket"
    param_name = "Bucket"

    def _fetch(self, names):
        return self.lookup.s3.get_buckets(names)

    def _clear_blocking(self, config, summary, record):
        bucket = record["Name"]
        keys = self._resolve(config, summary, lambda: self.lookup.s3.list_object_keys(bucket))
        if not keys:
            return
        deleter = ObjectDeleter(self.aws_client, bucket, lookup=self.lookup)
        deleter.add_resource_names(*keys)
        self._delete_children(config, summary, deleter)
