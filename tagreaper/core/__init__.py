"""
Core Infrastructure Components
==============================

Foundational pieces shared by lookups, deleters and the orchestrator:

- :class:`AWSClient` - Manages AWS sessions and cached service clients
- :class:`DeleteConfig` - Run-scoped deletion settings
- :class:`RetryPolicy` - Retry and backoff for AWS calls
- :class:`ResourceType` - The closed set of supported resource types
- Exception hierarchy for error handling

Example
-------
>>> from tagreaper.core import AWSClient, DeleteConfig
>>>
>>> client = AWSClient(region="us-east-1")
>>> config = DeleteConfig(dry_run=True)
"""

from tagreaper.core.aws_client import AWSClient
from tagreaper.core.config import DRY_RUN_PREFIX, DeleteConfig
from tagreaper.core.exceptions import (
    AWSClientError,
    CredentialsError,
    DeleteError,
    DeleterError,
    DependencyCycleError,
    GraphConsistencyError,
    GraphError,
    OperationCancelledError,
    RegionError,
    ResourceFetchError,
    ResourceLookupError,
    ServiceError,
    TagReaperError,
    WaitTimeoutError,
)
from tagreaper.core.resources import (
    SUB_RESOURCE_TYPES,
    ResourceIdentifierSet,
    ResourceType,
    add_names,
    count_names,
    merge,
)
from tagreaper.core.retry import RetryPolicy
from tagreaper.core.waiter import wait_until

__all__ = [
    # AWS Client
    "AWSClient",
    # Run configuration
    "DRY_RUN_PREFIX",
    "DeleteConfig",
    "RetryPolicy",
    "wait_until",
    # Resource model
    "SUB_RESOURCE_TYPES",
    "ResourceIdentifierSet",
    "ResourceType",
    "add_names",
    "count_names",
    "merge",
    # Exceptions - Base
    "TagReaperError",
    # Exceptions - AWS Client
    "AWSClientError",
    "CredentialsError",
    "RegionError",
    "ServiceError",
    # Exceptions - Lookup
    "ResourceLookupError",
    "ResourceFetchError",
    # Exceptions - Deleter
    "DeleterError",
    "DeleteError",
    "WaitTimeoutError",
    "OperationCancelledError",
    # Exceptions - Graph
    "GraphError",
    "DependencyCycleError",
    "GraphConsistencyError",
]
