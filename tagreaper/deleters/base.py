"""
Base class and result types shared by every resource deleter.

A deleter owns the working list of names for one resource type. It is built
once per run, collects names through ``add_resource_names`` and is consumed
by a single ``delete_resources`` call.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Collection, Dict, Iterable, Iterator, List, Optional

from botocore.exceptions import ClientError

from ..core.config import DRY_RUN_PREFIX, DeleteConfig
from ..core.exceptions import (
    CredentialsError,
    DeleteError,
    ResourceLookupError,
    WaitTimeoutError,
)
from ..core.resources import ResourceType
from ..core.retry import error_code, error_message, is_fatal, is_not_found
from ..core.waiter import wait_until
from ..lookup import ResourceLookup

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeleteStatus(Enum):
    """Status of a delete operation."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    DRY_RUN = "dry_run"


@dataclass
class DeleteResult:
    """
    Result of a single deletion attempt.

    Attributes:
        resource_type: Type of the resource
        resource_name: Name or id of the resource
        status: Result status
        error_code: AWS error code if failed
        error_message: Error message if failed
        parent_type: Type of the resource this one was deleted for
        parent_name: Name of the resource this one was deleted for
        timestamp: When the operation was attempted
    """

    resource_type: ResourceType
    resource_name: str
    status: DeleteStatus
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    parent_type: Optional[ResourceType] = None
    parent_name: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "resource_type": self.resource_type.value,
            "resource_name": self.resource_name,
            "status": self.status.value,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "parent_type": self.parent_type.value if self.parent_type else None,
            "parent_name": self.parent_name,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class DeleteSummary:
    """
    Summary of one deleter's run.

    Attributes:
        resource_type: Type handled by the deleter
        total: Number of results recorded
        deleted: Number successfully deleted
        failed: Number that failed to delete
        skipped: Number already gone
        dry_run: Number reported in dry-run mode
        results: Individual results
        children: Summaries of sub-resource deleters run first
        start_time: When the deleter started
        end_time: When the deleter finished
    """

    resource_type: Optional[ResourceType] = None
    total: int = 0
    deleted: int = 0
    failed: int = 0
    skipped: int = 0
    dry_run: int = 0
    results: List[DeleteResult] = field(default_factory=list)
    children: List["DeleteSummary"] = field(default_factory=list)
    start_time: datetime = field(default_factory=_utcnow)
    end_time: Optional[datetime] = None

    def add_result(self, result: DeleteResult) -> None:
        """Add a result and update counts."""
        self.results.append(result)
        self.total += 1

        if result.status == DeleteStatus.SUCCESS:
            self.deleted += 1
        elif result.status == DeleteStatus.FAILED:
            self.failed += 1
        elif result.status == DeleteStatus.SKIPPED:
            self.skipped += 1
        elif result.status == DeleteStatus.DRY_RUN:
            self.dry_run += 1

    def add_child(self, child: "DeleteSummary") -> None:
        self.children.append(child)

    def complete(self) -> None:
        """Mark the operation as complete."""
        self.end_time = _utcnow()

    def walk(self) -> Iterator["DeleteSummary"]:
        """Yield this summary and every nested child summary."""
        yield self
        for child in self.children:
            yield from child.walk()

    @property
    def has_failures(self) -> bool:
        return any(s.failed for s in self.walk())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "resource_type": self.resource_type.value if self.resource_type else None,
            "total": self.total,
            "deleted": self.deleted,
            "failed": self.failed,
            "skipped": self.skipped,
            "dry_run": self.dry_run,
            "results": [r.to_dict() for r in self.results],
            "children": [c.to_dict() for c in self.children],
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
        }


class ResourceDeleter(ABC):
    """
    Deletes every resource of one type named in its working list.

    Subclasses set ``resource_type``, ``service_name`` and ``description``
    and implement ``_delete``, which runs only outside dry-run mode and only
    with a non-empty working list.

    Sub-resource deleters are built with ``parent_type``/``parent_name`` so
    failures are reported with the resource they were blocking.
    """

    resource_type: ResourceType
    service_name: str = "ec2"
    #: Used in output lines, e.g. "Deleted EC2 VPC vpc-1"
    description: str = ""

    def __init__(
        self,
        aws_client,
        lookup: Optional[ResourceLookup] = None,
        parent_type: Optional[ResourceType] = None,
        parent_name: Optional[str] = None,
    ):
        """
        Initialize the deleter.

        Args:
            aws_client: Instance of AWSClient
            lookup: Lookup service; built from aws_client when omitted
            parent_type: Type of the resource this one blocks
            parent_name: Name of the resource this one blocks
        """
        self.aws_client = aws_client
        self.region = aws_client.region
        self.lookup = lookup if lookup is not None else ResourceLookup(aws_client)
        self.parent_type = parent_type
        self.parent_name = parent_name
        self.resource_names: List[str] = []
        #: Summary of the last delete_resources call, kept when it raises
        self.summary: Optional[DeleteSummary] = None
        self._client = None

    @property
    def client(self):
        """Lazy load the service client."""
        if self._client is None:
            self._client = self.aws_client.get_client(self.service_name)
        return self._client

    def add_resource_names(self, *names: str) -> None:
        """Append names to the working list. Duplicates are kept."""
        self.resource_names.extend(names)

    def delete_resources(self, config: DeleteConfig) -> DeleteSummary:
        """
        Delete every resource in the working list.

        Args:
            config: Run configuration

        Returns:
            DeleteSummary with one result per name handled

        Raises:
            DeleteError: A deletion failed and errors are not ignored
            CredentialsError: AWS rejected the credentials
        """
        summary = DeleteSummary(resource_type=self.resource_type)
        self.summary = summary
        if not self.resource_names:
            summary.complete()
            return summary

        logger.debug(f"Deleting {self}")
        try:
            if config.dry_run:
                for name in self.resource_names:
                    self._record_dry_run(config, summary, name)
            else:
                self._delete(config, summary)
        finally:
            summary.complete()
        return summary

    @abstractmethod
    def _delete(self, config: DeleteConfig, summary: DeleteSummary) -> None:
        """Resolve, clear blocking sub-resources and delete."""

    # =========================================================================
    # Helpers for subclasses
    # =========================================================================

    def _names(self) -> List[str]:
        """Working names without duplicates, in insertion order."""
        return list(dict.fromkeys(n for n in self.resource_names if n))

    def _resolve(
        self,
        config: DeleteConfig,
        summary: DeleteSummary,
        fetch: Callable[[], List[Dict[str, Any]]],
    ) -> Optional[List[Dict[str, Any]]]:
        """
        Run a lookup for the working names.

        Returns None when the lookup failed and errors are ignored.
        """
        try:
            return fetch()
        except ResourceLookupError as e:
            code = e.details.get("aws_err_code", "LookupFailed")
            self._report_failure(config, None, code, e.message)
            if not config.ignore_errors:
                raise
            summary.add_result(
                DeleteResult(
                    self.resource_type,
                    ",".join(self._names()),
                    DeleteStatus.FAILED,
                    error_code=code,
                    error_message=e.message,
                    parent_type=self.parent_type,
                    parent_name=self.parent_name,
                )
            )
            return None

    def _skip_missing(
        self,
        summary: DeleteSummary,
        found: Collection[str],
        names: Optional[Iterable[str]] = None,
    ) -> None:
        """Record working names that no longer exist as skipped."""
        for name in names if names is not None else self._names():
            if name not in found:
                logger.debug(f"{self.description} {name} not found, skipping")
                summary.add_result(
                    DeleteResult(
                        self.resource_type,
                        name,
                        DeleteStatus.SKIPPED,
                        parent_type=self.parent_type,
                        parent_name=self.parent_name,
                    )
                )

    def _delete_children(
        self,
        config: DeleteConfig,
        summary: DeleteSummary,
        deleter: "ResourceDeleter",
    ) -> bool:
        """
        Run a sub-resource deleter before deleting the parent.

        Returns:
            True if every sub-resource is gone
        """
        child = deleter.delete_resources(config)
        summary.add_child(child)
        return not child.has_failures

    def _execute(
        self,
        config: DeleteConfig,
        summary: DeleteSummary,
        name: str,
        operation: Callable[..., Any],
        record: bool = True,
        **params: Any,
    ) -> bool:
        """
        Call a mutating operation under the retry policy.

        Not-found errors count as already deleted. Other errors are reported
        and either raised or, when errors are ignored, swallowed.

        Args:
            config: Run configuration
            summary: Summary receiving the result
            name: Resource the call is about
            operation: Bound boto3 client method
            record: Record a success result and print the success line
            **params: Operation parameters

        Returns:
            True if the resource is gone (or the call succeeded)
        """
        try:
            config.call(operation, **params)
        except ClientError as e:
            if is_not_found(e):
                logger.debug(f"{self.description} {name} already gone ({error_code(e)})")
                if record:
                    summary.add_result(
                        DeleteResult(
                            self.resource_type,
                            name,
                            DeleteStatus.SKIPPED,
                            parent_type=self.parent_type,
                            parent_name=self.parent_name,
                        )
                    )
                return True
            self._fail(config, summary, name, error_code(e), error_message(e), error=e)
            return False
        finally:
            config.pause()

        if record:
            self._record_success(config, summary, name)
        return True

    def _wait_for_deletion(
        self,
        config: DeleteConfig,
        summary: DeleteSummary,
        names: List[str],
        poll: Callable[[List[str]], Collection[str]],
    ) -> None:
        """
        Block until ``poll`` reports none of ``names`` pending, then record
        success for the finished ones and failure for the rest.
        """
        if not names:
            return
        try:
            pending = wait_until(
                lambda: poll(names),
                timeout=config.wait_timeout,
                interval=config.poll_interval,
                cancel_event=config.cancel_event,
                description=self.description,
            )
        except ResourceLookupError as e:
            if not config.ignore_errors:
                raise
            # Deletion was requested but cannot be confirmed
            code = e.details.get("aws_err_code", "LookupFailed")
            self._record_failures(config, summary, names, code, e.message)
            return

        for name in names:
            if name not in pending:
                self._record_success(config, summary, name)
        if not pending:
            return

        message = f"Timed out after {config.wait_timeout:g}s waiting for deletion"
        self._record_failures(config, summary, sorted(pending), "WaitTimeout", message)
        if not config.ignore_errors:
            raise WaitTimeoutError(
                message,
                resource_type=self.resource_type.value,
                pending=sorted(pending),
                timeout=config.wait_timeout,
            )

    # =========================================================================
    # Reporting
    # =========================================================================

    def _record_success(self, config: DeleteConfig, summary: DeleteSummary, name: str) -> None:
        summary.add_result(
            DeleteResult(
                self.resource_type,
                name,
                DeleteStatus.SUCCESS,
                parent_type=self.parent_type,
                parent_name=self.parent_name,
            )
        )
        config.emit(f"Deleted {self.description} {name}")
        config.request_logger.info(
            "Deleted resource", extra=self._log_fields(name)
        )

    def _record_failures(
        self,
        config: DeleteConfig,
        summary: DeleteSummary,
        names: Iterable[str],
        code: str,
        message: str,
    ) -> None:
        for name in names:
            self._report_failure(config, name, code, message)
            summary.add_result(
                DeleteResult(
                    self.resource_type,
                    name,
                    DeleteStatus.FAILED,
                    error_code=code,
                    error_message=message,
                    parent_type=self.parent_type,
                    parent_name=self.parent_name,
                )
            )

    def _record_dry_run(self, config: DeleteConfig, summary: DeleteSummary, name: str) -> None:
        summary.add_result(
            DeleteResult(
                self.resource_type,
                name,
                DeleteStatus.DRY_RUN,
                parent_type=self.parent_type,
                parent_name=self.parent_name,
            )
        )
        config.emit(f"{DRY_RUN_PREFIX} Deleted {self.description} {name}")

    def _fail(
        self,
        config: DeleteConfig,
        summary: DeleteSummary,
        name: str,
        code: str,
        message: str,
        error: Optional[Exception] = None,
    ) -> None:
        """
        Record a failed deletion.

        Raises:
            CredentialsError: The error is a credential failure
            DeleteError: Errors are not ignored
        """
        summary.add_result(
            DeleteResult(
                self.resource_type,
                name,
                DeleteStatus.FAILED,
                error_code=code,
                error_message=message,
                parent_type=self.parent_type,
                parent_name=self.parent_name,
            )
        )
        self._report_failure(config, name, code, message)

        if isinstance(error, ClientError) and is_fatal(error):
            raise CredentialsError(
                f"AWS rejected credentials while deleting {self.description} {name}",
                service=self.service_name,
                region=self.region,
                details={"aws_err_code": code},
            ) from error
        if not config.ignore_errors:
            raise DeleteError(
                f"Failed to delete {self.description} {name}: {code}",
                resource_type=self.resource_type.value,
                resource_name=name,
                details={"aws_err_code": code, "aws_err_msg": message},
            ) from error

    def _report_failure(
        self,
        config: DeleteConfig,
        name: Optional[str],
        code: str,
        message: str,
    ) -> None:
        """Print the failure line, log it, and print a JSON error record when ignoring errors."""
        shown = name if name is not None else ",".join(self._names())
        config.emit(f'Failed to delete {self.description} "{shown}": {code}')
        fields = self._log_fields(shown)
        fields.update({"aws_err_code": code, "aws_err_msg": message})
        config.request_logger.error("Failed to delete resource", extra=fields)
        if config.ignore_errors:
            config.emit(
                json.dumps(
                    {"error": f"{self.resource_type.value} {shown}: {code}: {message}"}
                )
            )

    def _log_fields(self, name: str) -> Dict[str, str]:
        fields = {
            "resource_type": self.resource_type.value,
            "resource_name": name,
        }
        if self.parent_type is not None:
            fields["parent_resource_type"] = self.parent_type.value
            fields["parent_resource_name"] = self.parent_name or ""
        return fields

    def __str__(self) -> str:
        return json.dumps(
            {"resource_type": self.resource_type.value, "names": self.resource_names}
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(region='{self.region}', "
            f"names={len(self.resource_names)})"
        )


class RecordDeleter(ResourceDeleter):
    """
    Deleter for types resolved through a lookup and deleted one by one.

    Subclasses implement ``_fetch`` and set ``id_key`` (record key holding
    the name), ``operation_name`` and ``param_name`` (the delete call and the
    parameter receiving the name). ``_clear_blocking`` runs for every
    resolved record before the first delete call.
    """

    id_key: str = ""
    operation_name: str = ""
    param_name: str = ""

    @abstractmethod
    def _fetch(self, names: List[str]) -> List[Dict[str, Any]]:
        """Return the live records behind ``names``."""

    def _clear_blocking(
        self,
        config: DeleteConfig,
        summary: DeleteSummary,
        record: Dict[str, Any],
    ) -> Optional[bool]:
        """
        Delete sub-resources blocking deletion of ``record``.

        Returning False skips the delete call for ``record``; its failure
        has already been recorded.
        """

    def _delete(self, config: DeleteConfig, summary: DeleteSummary) -> None:
        names = self._names()
        records = self._resolve(config, summary, lambda: self._fetch(names))
        if records is None:
            return

        position = {name: i for i, name in enumerate(names)}
        records = sorted(records, key=lambda r: position.get(r[self.id_key], len(position)))
        self._skip_missing(summary, {r[self.id_key] for r in records}, names)

        blocked = {
            record[self.id_key]
            for record in records
            if self._clear_blocking(config, summary, record) is False
        }

        operation = getattr(self.client, self.operation_name)
        for record in records:
            name = record[self.id_key]
            if name in blocked:
                continue
            self._execute(config, summary, name, operation, **{self.param_name: name})


class SubResourceDeleter(ResourceDeleter):
    """
    Deleter for sub-resources the parent deleter has already resolved.

    Each name is registered together with the parameters of its delete call,
    so no lookup is needed. Subclasses set ``operation_name`` and
    ``parent_resource_type``.

    Example:
        >>> detacher = InternetGatewayAttachmentDeleter(aws_client, "igw-1")
        >>> detacher.add_resource("vpc-1", InternetGatewayId="igw-1", VpcId="vpc-1")
        >>> detacher.delete_resources(config)
    """

    operation_name: str = ""
    parent_resource_type: Optional[ResourceType] = None

    def __init__(self, aws_client, parent_name: str, lookup: Optional[ResourceLookup] = None):
        super().__init__(
            aws_client,
            lookup=lookup,
            parent_type=self.parent_resource_type,
            parent_name=parent_name,
        )
        self.call_params: Dict[str, Dict[str, Any]] = {}

    def add_resource(self, name: str, **params: Any) -> None:
        """Register a sub-resource and the parameters of its delete call."""
        self.add_resource_names(name)
        self.call_params[name] = params

    def _delete(self, config: DeleteConfig, summary: DeleteSummary) -> None:
        operation = getattr(self.client, self.operation_name)
        for name in self._names():
            self._execute(config, summary, name, operation, **self.call_params.get(name, {}))
