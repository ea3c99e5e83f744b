"""
Base Lookup Module
==================

Provides the base class for the per-service lookup classes.

Lookups answer "which of these resources still exist, and what do they look
like?". They never mutate anything. Every lookup method returns a fully
materialized list of the raw records returned by boto3, and tolerates
identifiers that no longer exist by leaving them out of the result.

Classes
-------
BaseLookup
    Abstract base class holding the client and the query helpers.

Example
-------
>>> class VolumeLookup(BaseLookup):
...     service_name = "ec2"
...
...     def describe_volumes(self, ids):
...         return self._filtered(
...             "describe_volumes", "Volumes", "volume-id", ids
...         )

Notes
-----
Filter-style queries are used wherever the API offers them: a filter on
an unknown id returns nothing, where an id parameter would raise a
not-found error. Filter values are sent in chunks of ``FILTER_CHUNK_SIZE``.
"""

from __future__ import annotations

import logging
from abc import ABC
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, TypeVar

from botocore.exceptions import ClientError

from tagreaper.core.exceptions import CredentialsError, ResourceFetchError
from tagreaper.core.retry import error_code, error_message, is_fatal, is_not_found

# Module logger
logger = logging.getLogger(__name__)

# EC2 accepts at most 200 values per filter
FILTER_CHUNK_SIZE = 200

T = TypeVar("T")


def chunked(values: Sequence[T], size: int) -> Iterator[List[T]]:
    """
    Yield consecutive slices of ``values`` with at most ``size`` items.

    Example
    -------
    >>> list(chunked(["a", "b", "c"], 2))
    [['a', 'b'], ['c']]
    """
    if size < 1:
        raise ValueError("size must be positive")
    for start in range(0, len(values), size):
        yield list(values[start:start + size])


def unique(values: Optional[Iterable[str]]) -> List[str]:
    """Drop empty and repeated values, keeping first-seen order."""
    seen = set()
    result = []
    for value in values or ():
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


class BaseLookup(ABC):
    """
    Abstract base class for service lookups.

    Parameters
    ----------
    aws_client : AWSClient
        Instance of AWSClient for AWS API access.

    Attributes
    ----------
    aws_client : AWSClient
        The AWS client instance.
    region : str
        The AWS region queried.
    """

    #: boto3 service name, set by subclasses
    service_name: str = ""

    def __init__(self, aws_client) -> None:
        self.aws_client = aws_client
        self.region = aws_client.region
        self._client = None
        logger.debug(f"Initialized {self.__class__.__name__} for region {self.region}")

    @property
    def client(self) -> Any:
        """Lazily created boto3 client for ``service_name``."""
        if self._client is None:
            self._client = self.aws_client.get_client(self.service_name)
        return self._client

    # =========================================================================
    # Query Helpers
    # =========================================================================

    def _collect(
        self,
        operation_name: str,
        result_key: str,
        resource_type: Optional[str] = None,
        **kwargs: Any,
    ) -> List[Dict[str, Any]]:
        """
        Call ``operation_name`` (paginating when boto3 supports it) and return
        every item under ``result_key``.

        Not-found errors return an empty list.

        Raises
        ------
        CredentialsError
            If AWS rejects the credentials.
        ResourceFetchError
            For any other AWS error.
        """
        items: List[Dict[str, Any]] = []
        try:
            if self.client.can_paginate(operation_name):
                paginator = self.client.get_paginator(operation_name)
                for page in paginator.paginate(**kwargs):
                    items.extend(page.get(result_key, []))
            else:
                response = getattr(self.client, operation_name)(**kwargs)
                items.extend(response.get(result_key, []))
        except ClientError as e:
            if is_not_found(e):
                logger.debug(f"{operation_name}: {error_code(e)}, treating as empty")
                return []
            if is_fatal(e):
                raise CredentialsError(
                    f"AWS rejected credentials during {operation_name}",
                    service=self.service_name,
                    region=self.region,
                    details={"aws_err_code": error_code(e)},
                ) from e
            raise ResourceFetchError(
                f"Failed to call {self.service_name}:{operation_name}",
                resource_type=resource_type,
                details={
                    "aws_err_code": error_code(e),
                    "aws_err_msg": error_message(e),
                },
            ) from e
        return items

    def _filtered(
        self,
        operation_name: str,
        result_key: str,
        filter_name: str,
        values: Optional[Iterable[str]],
        extra_filters: Optional[List[Dict[str, Any]]] = None,
        filter_param: str = "Filters",
        resource_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run a filter query for ``values`` in chunks of ``FILTER_CHUNK_SIZE``.

        An empty ``values`` list returns an empty result without calling AWS.
        """
        values = unique(values)
        items: List[Dict[str, Any]] = []
        for chunk in chunked(values, FILTER_CHUNK_SIZE):
            filters = [{"Name": filter_name, "Values": chunk}]
            filters.extend(extra_filters or [])
            items.extend(
                self._collect(
                    operation_name,
                    result_key,
                    resource_type=resource_type,
                    **{filter_param: filters},
                )
            )
        return items

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(region='{self.region}')"
