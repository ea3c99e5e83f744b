"""
TagReaper: Dependency-Aware AWS Resource Deletion
=================================================

Deletes a group of AWS resources, together with the untagged resources that
hang off them, in an order AWS accepts.

Modules
-------
core
    AWS client, run configuration, retry policy, logging and exceptions
lookup
    Read-only queries returning the live records behind resource names
deleters
    One deleter per resource type, selected through a registry
graph
    Discovery forest, deletion order and graph expansion
orchestrator
    Runs the deleters in dependency order and builds the report
reporters
    Output formatters (CLI, JSON)

Example
-------
>>> from tagreaper.core import AWSClient, DeleteConfig, ResourceType
>>> from tagreaper.orchestrator import DeletionOrchestrator
>>>
>>> client = AWSClient(region="us-east-1")
>>> orchestrator = DeletionOrchestrator(client)
>>> report = orchestrator.run(
...     {ResourceType.VPC: ["vpc-0abc"]}, DeleteConfig(dry_run=True), expand=True
... )

Notes
-----
Requires AWS credentials configured via:
- Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY)
- AWS credentials file (~/.aws/credentials)
- IAM role (when running on AWS infrastructure)

See Also
--------
boto3 : AWS SDK for Python
"""

__version__ = "0.1.0"
__author__ = "TagReaper Team"
__license__ = "MIT"

# Public API
from tagreaper.core.aws_client import AWSClient
from tagreaper.core.config import DeleteConfig
from tagreaper.core.exceptions import TagReaperError
from tagreaper.core.resources import ResourceIdentifierSet, ResourceType

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Core classes
    "AWSClient",
    "DeleteConfig",
    "ResourceIdentifierSet",
    "ResourceType",
    "TagReaperError",
]
