"""
Deletion Orchestrator
=====================

Runs the per-type deleters over a resource identifier set in dependency
order, leaf types first, and collects their summaries into a
:class:`DeletionReport`.

A deletion failure that a deleter raises (errors not ignored, credentials
rejected, a wait timing out) aborts the remaining types. The report of an
aborted run is still returned, with ``aborted`` set and the exception in
``error``; :meth:`DeletionReport.raise_for_error` re-raises it.

Example
-------
>>> from tagreaper.core.config import DeleteConfig
>>> from tagreaper.orchestrator import DeletionOrchestrator
>>>
>>> orchestrator = DeletionOrchestrator(aws_client)
>>> report = orchestrator.run(
...     {ResourceType.VPC: ["vpc-0abc"]},
...     DeleteConfig(ignore_errors=True),
...     expand=True,
... )
>>> report.by_type["AWS::EC2::Subnet"]["deleted"]
2
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from tagreaper.arn import build_arn
from tagreaper.core.config import DeleteConfig
from tagreaper.core.exceptions import (
    OperationCancelledError,
    ResourceLookupError,
    TagReaperError,
)
from tagreaper.core.resources import ResourceIdentifierSet, ResourceType
from tagreaper.deleters import DELETER_REGISTRY, DeleteStatus, DeleteSummary, ResourceDeleter
from tagreaper.graph.dependency import DELETE_ORDER, check_tables
from tagreaper.graph.expansion import fill_dependency_graph
from tagreaper.lookup import ResourceLookup

logger = logging.getLogger(__name__)

COUNT_FIELDS = ("deleted", "failed", "skipped", "dry_run")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DeletionReport:
    """
    Outcome of one orchestrated run.

    Attributes
    ----------
    dry_run : bool
        Whether the run only simulated deletions.
    summaries : dict
        One ``DeleteSummary`` per type, in the order the types ran.
    aborted : bool
        Whether a failure stopped the run before every type was handled.
    error : TagReaperError or None
        The failure that stopped the run.
    """

    dry_run: bool = False
    summaries: Dict[ResourceType, DeleteSummary] = field(default_factory=dict)
    aborted: bool = False
    error: Optional[TagReaperError] = None
    start_time: datetime = field(default_factory=_utcnow)
    end_time: Optional[datetime] = None

    def add_summary(self, summary: DeleteSummary) -> None:
        self.summaries[summary.resource_type] = summary

    def complete(self) -> None:
        self.end_time = _utcnow()

    def abort(self, error: TagReaperError) -> None:
        self.aborted = True
        self.error = error

    def raise_for_error(self) -> None:
        """Re-raise the error that aborted the run, if any."""
        if self.error is not None:
            raise self.error

    @property
    def by_type(self) -> Dict[str, Dict[str, int]]:
        """Counts per resource type, sub-resources included."""
        counts: Dict[str, Dict[str, int]] = {}
        for summary in self.summaries.values():
            for nested in summary.walk():
                if nested.resource_type is None or not nested.total:
                    continue
                entry = counts.setdefault(
                    nested.resource_type.value, dict.fromkeys(COUNT_FIELDS, 0)
                )
                for name in COUNT_FIELDS:
                    entry[name] += getattr(nested, name)
        return counts

    @property
    def totals(self) -> Dict[str, int]:
        totals = dict.fromkeys(COUNT_FIELDS, 0)
        for entry in self.by_type.values():
            for name in COUNT_FIELDS:
                totals[name] += entry[name]
        return totals

    @property
    def has_failures(self) -> bool:
        return self.aborted or any(s.has_failures for s in self.summaries.values())

    def deleted_arns(
        self,
        region: str,
        account_id: str,
        partition: str = "aws",
    ) -> List[str]:
        """ARNs of the top-level resources deleted in this run."""
        arns = []
        for resource_type, summary in self.summaries.items():
            for result in summary.results:
                if result.status != DeleteStatus.SUCCESS:
                    continue
                arn = build_arn(resource_type, result.resource_name, region, account_id, partition)
                if arn:
                    arns.append(arn)
        return arns

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "dry_run": self.dry_run,
            "aborted": self.aborted,
            "error": self.error.to_dict() if self.error else None,
            "totals": self.totals,
            "by_type": self.by_type,
            "summaries": [s.to_dict() for s in self.summaries.values()],
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
        }


class DeletionOrchestrator:
    """
    Deletes a resource identifier set type by type, leaf types first.

    Parameters
    ----------
    aws_client : AWSClient
        Client shared by every deleter of the run.
    registry : mapping, optional
        Deleter class per resource type.
    lookup : ResourceLookup, optional
        Lookup shared by graph expansion and the deleters.
    order : sequence of ResourceType, optional
        Type order to run deleters in. Defaults to the deletion table's
        leaf-first order.

    Raises
    ------
    GraphConsistencyError
        If the dependency tables and ``registry`` disagree.
    """

    def __init__(
        self,
        aws_client,
        registry: Mapping[ResourceType, Type[ResourceDeleter]] = DELETER_REGISTRY,
        lookup: Optional[ResourceLookup] = None,
        order: Optional[Sequence[ResourceType]] = None,
    ) -> None:
        check_tables(registry.keys())
        self.aws_client = aws_client
        self.registry = registry
        self.lookup = lookup if lookup is not None else ResourceLookup(aws_client)
        self.order: Tuple[ResourceType, ...] = tuple(order) if order is not None else DELETE_ORDER

    def plan(self, resources: ResourceIdentifierSet) -> List[Tuple[ResourceType, List[str]]]:
        """
        Return ``(type, names)`` pairs in the order they will be deleted.

        Types without names and types without a deleter are left out.
        """
        for resource_type in resources:
            if resource_type not in self.registry:
                logger.warning(f"No deleter for {resource_type}, skipping its resources")
        return [
            (resource_type, list(resources[resource_type]))
            for resource_type in self.order
            if resource_type in self.registry and resources.get(resource_type)
        ]

    def run(
        self,
        resources: ResourceIdentifierSet,
        config: DeleteConfig,
        expand: bool = False,
    ) -> DeletionReport:
        """
        Delete every resource in ``resources``.

        Parameters
        ----------
        resources : ResourceIdentifierSet
            Names to delete, per type. Expanded in place when ``expand`` is set.
        config : DeleteConfig
            Run configuration passed to every deleter.
        expand : bool
            Discover dependent resources before deleting.

        Returns
        -------
        DeletionReport
            Per-type summaries. ``aborted`` is set when a failure stopped
            the run early.
        """
        report = DeletionReport(dry_run=config.dry_run)

        try:
            if expand:
                self._expand(resources, config)

            for resource_type, names in self.plan(resources):
                if config.cancel_event.is_set():
                    raise OperationCancelledError(
                        "Run cancelled", resource_type=resource_type.value
                    )
                deleter = self.registry[resource_type](self.aws_client, lookup=self.lookup)
                deleter.add_resource_names(*names)
                try:
                    report.add_summary(deleter.delete_resources(config))
                except TagReaperError:
                    if deleter.summary is not None:
                        report.add_summary(deleter.summary)
                    raise
        except TagReaperError as e:
            logger.error(f"Run aborted: {e}")
            report.abort(e)
        finally:
            report.complete()

        return report

    def _expand(self, resources: ResourceIdentifierSet, config: DeleteConfig) -> None:
        try:
            fill_dependency_graph(resources, self.lookup)
        except ResourceLookupError as e:
            if not config.ignore_errors:
                raise
            # Expansion is best effort; delete what is already known
            logger.error(f"Dependency expansion failed: {e}")
            config.emit(json.dumps({"error": f"dependency expansion: {e}"}))
