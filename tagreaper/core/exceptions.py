"""
Custom Exceptions for TagReaper
===============================

This module defines the hierarchy of exceptions raised while resolving,
ordering and deleting AWS resources.

Exception Hierarchy
-------------------
::

    TagReaperError (base)
    ├── AWSClientError
    │   ├── CredentialsError
    │   ├── RegionError
    │   └── ServiceError
    ├── ResourceLookupError
    │   └── ResourceFetchError
    ├── DeleterError
    │   ├── DeleteError
    │   ├── WaitTimeoutError
    │   └── OperationCancelledError
    └── GraphError
        ├── DependencyCycleError
        └── GraphConsistencyError

Example
-------
>>> from tagreaper.core.exceptions import DeleteError, TagReaperError
>>>
>>> try:
...     orchestrator.run(resource_set, config).raise_for_error()
... except DeleteError as e:
...     print(f"Deletion aborted: {e}")
... except TagReaperError as e:
...     print(f"TagReaper error: {e}")
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


class TagReaperError(Exception):
    """
    Base exception for all TagReaper errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    details : dict, optional
        Additional context about the error.

    Attributes
    ----------
    message : str
        The error message.
    details : dict
        Additional error details.

    Example
    -------
    >>> raise TagReaperError("Something went wrong", details={"code": 500})
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation of the error.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# AWS Client Exceptions
# =============================================================================


class AWSClientError(TagReaperError):
    """
    Base exception for AWS client-related errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    service : str, optional
        The AWS service that caused the error.
    region : str, optional
        The AWS region where the error occurred.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        region: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        self.region = region
        full_details = details or {}
        if service:
            full_details["service"] = service
        if region:
            full_details["region"] = region
        super().__init__(message, full_details)


class CredentialsError(AWSClientError):
    """
    Raised when AWS credentials are invalid, missing, or expired.

    Always fatal: deleters re-raise it even when errors are ignored.
    """


class RegionError(AWSClientError):
    """Raised when the configured AWS region is invalid or missing."""


class ServiceError(AWSClientError):
    """Raised when a client for an AWS service cannot be created."""


# =============================================================================
# Lookup Exceptions
# =============================================================================


class ResourceLookupError(TagReaperError):
    """
    Base exception for resource lookup errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_type : str, optional
        The resource type being looked up.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_type = resource_type
        full_details = details or {}
        if resource_type:
            full_details["resource_type"] = resource_type
        super().__init__(message, full_details)


class ResourceFetchError(ResourceLookupError):
    """
    Raised when live resources cannot be described.

    Example
    -------
    >>> raise ResourceFetchError(
    ...     "Failed to describe subnets",
    ...     resource_type="AWS::EC2::Subnet",
    ...     details={"aws_err_code": "UnauthorizedOperation"},
    ... )
    """


# =============================================================================
# Deleter Exceptions
# =============================================================================


class DeleterError(TagReaperError):
    """
    Base exception for deleter errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_type : str, optional
        The type of resource being deleted.
    resource_name : str, optional
        The name of the resource being deleted.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_name = resource_name
        full_details = details or {}
        if resource_type:
            full_details["resource_type"] = resource_type
        if resource_name:
            full_details["resource_name"] = resource_name
        super().__init__(message, full_details)


class DeleteError(DeleterError):
    """
    Raised when a resource cannot be deleted and errors are not ignored.

    Example
    -------
    >>> raise DeleteError(
    ...     "Failed to delete security group",
    ...     resource_type="AWS::EC2::SecurityGroup",
    ...     resource_name="sg-123456",
    ...     details={"aws_err_code": "DependencyViolation"},
    ... )
    """


class WaitTimeoutError(DeleterError):
    """Raised when resources do not reach a terminal state in time."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        pending: Iterable[str] = (),
        timeout: Optional[float] = None,
    ) -> None:
        self.pending = list(pending)
        super().__init__(
            message,
            resource_type=resource_type,
            details={"pending": self.pending, "timeout_seconds": timeout},
        )


class OperationCancelledError(DeleterError):
    """Raised when a run is cancelled while waiting on AWS."""


# =============================================================================
# Graph Exceptions
# =============================================================================


class GraphError(TagReaperError):
    """Base exception for dependency graph errors."""


class DependencyCycleError(GraphError):
    """
    Raised when a dependency table contains a cycle.

    Example
    -------
    >>> raise DependencyCycleError(
    ...     "Dependency table contains a cycle",
    ...     details={"cycle": ["AWS::EC2::VPC", "AWS::EC2::Subnet", "AWS::EC2::VPC"]},
    ... )
    """


class GraphConsistencyError(GraphError):
    """Raised when the discovery table, deletion order and registry disagree."""
