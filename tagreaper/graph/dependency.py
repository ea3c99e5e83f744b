"""
Dependency Tables
=================

Two static tables describe how resource types relate.

Discovery table (``DISCOVERY_CHILDREN``)
    Which types can be found from a known resource of another type: from a
    VPC, its subnets, instances, gateways, ...; from an Auto Scaling group,
    its launch configuration and load balancers. Starting from
    ``ROOT_TYPES`` and following the table for ``EXPANSION_ROUNDS`` rounds
    gives the discovery forest walked by graph expansion.

Deletion table (``DELETION_DEPENDENCIES``)
    Which types must be gone before a type can be deleted. Its leaf-first
    topological order is the order the orchestrator runs deleters in.

The two tables differ in direction for some pairs: a launch configuration
is discovered from its Auto Scaling group but can only be deleted once the
group is gone. :func:`check_tables` verifies at startup that every
discovery edge is ordered by the deletion table, that both tables are
acyclic, and that every type has a registered deleter.

Example
-------
>>> from tagreaper.graph.dependency import DELETE_ORDER, DISCOVERY_FOREST
>>> [node.resource_type for node in DISCOVERY_FOREST]
[<ResourceType.VPC: ...>, <ResourceType.AUTOSCALING_GROUP: ...>, ...]
>>> DELETE_ORDER.index(ResourceType.SUBNET) < DELETE_ORDER.index(ResourceType.VPC)
True
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    Collection,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from tagreaper.core.exceptions import DependencyCycleError, GraphConsistencyError
from tagreaper.core.resources import ResourceType

RT = ResourceType

# Types assumed discoverable by tag, where expansion starts
ROOT_TYPES: Tuple[ResourceType, ...] = (
    RT.VPC,
    RT.AUTOSCALING_GROUP,
    RT.HOSTED_ZONE,
    RT.BUCKET,
)

EXPANSION_ROUNDS = 2

DISCOVERY_CHILDREN: Mapping[ResourceType, Tuple[ResourceType, ...]] = MappingProxyType(
    {
        RT.VPC: (
            RT.VPN_GATEWAY,
            RT.NAT_GATEWAY,
            RT.INTERNET_GATEWAY,
            RT.INSTANCE,
            RT.SUBNET,
            RT.NETWORK_INTERFACE,
            RT.SECURITY_GROUP,
            RT.ROUTE_TABLE,
        ),
        RT.AUTOSCALING_GROUP: (RT.LAUNCH_CONFIGURATION, RT.LOAD_BALANCER),
        RT.VPN_GATEWAY: (RT.VPN_CONNECTION,),
        RT.INSTANCE: (RT.INSTANCE_PROFILE, RT.ROLE),
        RT.SUBNET: (RT.NETWORK_ACL,),
        RT.NETWORK_INTERFACE: (RT.ELASTIC_IP, RT.EIP_ASSOCIATION),
        RT.ROUTE_TABLE: (RT.ROUTE_TABLE_ASSOCIATION,),
        RT.LAUNCH_CONFIGURATION: (RT.INSTANCE_PROFILE, RT.ROLE),
    }
)

# type -> types that must be deleted before it
DELETION_DEPENDENCIES: Mapping[ResourceType, Tuple[ResourceType, ...]] = MappingProxyType(
    {
        RT.BUCKET: (),
        RT.HOSTED_ZONE: (),
        RT.INSTANCE: (),
        RT.NAT_GATEWAY: (),
        RT.VPN_CONNECTION: (),
        RT.ROUTE_TABLE_ASSOCIATION: (),
        RT.AUTOSCALING_GROUP: (RT.INSTANCE,),
        RT.LOAD_BALANCER: (RT.AUTOSCALING_GROUP,),
        RT.LAUNCH_CONFIGURATION: (RT.AUTOSCALING_GROUP,),
        RT.INSTANCE_PROFILE: (RT.INSTANCE, RT.LAUNCH_CONFIGURATION),
        RT.ROLE: (RT.INSTANCE_PROFILE,),
        RT.EIP_ASSOCIATION: (RT.NAT_GATEWAY,),
        RT.ELASTIC_IP: (RT.EIP_ASSOCIATION, RT.NAT_GATEWAY),
        RT.INTERNET_GATEWAY: (
            RT.INSTANCE,
            RT.NAT_GATEWAY,
            RT.EIP_ASSOCIATION,
            RT.ELASTIC_IP,
        ),
        RT.NETWORK_INTERFACE: (
            RT.INSTANCE,
            RT.LOAD_BALANCER,
            RT.NAT_GATEWAY,
            RT.EIP_ASSOCIATION,
            RT.ELASTIC_IP,
        ),
        RT.VOLUME: (RT.INSTANCE,),
        RT.CUSTOMER_GATEWAY: (RT.VPN_CONNECTION,),
        RT.VPN_GATEWAY: (RT.VPN_CONNECTION,),
        RT.SUBNET: (
            RT.INSTANCE,
            RT.AUTOSCALING_GROUP,
            RT.LOAD_BALANCER,
            RT.NAT_GATEWAY,
            RT.NETWORK_INTERFACE,
            RT.ROUTE_TABLE_ASSOCIATION,
        ),
        # An associated network ACL cannot be deleted; subnets go first
        RT.NETWORK_ACL: (RT.SUBNET,),
        RT.ROUTE_TABLE: (RT.ROUTE_TABLE_ASSOCIATION, RT.SUBNET),
        RT.SECURITY_GROUP: (
            RT.INSTANCE,
            RT.LOAD_BALANCER,
            RT.NETWORK_INTERFACE,
        ),
        RT.VPC: (
            RT.INSTANCE,
            RT.INTERNET_GATEWAY,
            RT.NAT_GATEWAY,
            RT.NETWORK_ACL,
            RT.NETWORK_INTERFACE,
            RT.ROUTE_TABLE,
            RT.SECURITY_GROUP,
            RT.SUBNET,
            RT.VPN_GATEWAY,
        ),
    }
)


@dataclass(frozen=True)
class DependencyNode:
    """A resource type in the discovery forest and the nodes found from it."""

    resource_type: ResourceType
    children: Tuple["DependencyNode", ...] = ()

    def walk(self) -> Iterator["DependencyNode"]:
        """Yield this node and its descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()


# =============================================================================
# Validation
# =============================================================================


def find_cycle(
    table: Mapping[ResourceType, Iterable[ResourceType]],
) -> Optional[List[ResourceType]]:
    """
    Return one cycle of ``table`` as a closed path, or None if it is acyclic.

    Example
    -------
    >>> find_cycle({RT.VPC: (RT.SUBNET,), RT.SUBNET: (RT.VPC,)})
    [<ResourceType.VPC: ...>, <ResourceType.SUBNET: ...>, <ResourceType.VPC: ...>]
    """
    visiting: Set[ResourceType] = set()
    done: Set[ResourceType] = set()
    path: List[ResourceType] = []

    def visit(node: ResourceType) -> Optional[List[ResourceType]]:
        if node in done:
            return None
        if node in visiting:
            return path[path.index(node):] + [node]
        visiting.add(node)
        path.append(node)
        for child in table.get(node, ()):
            cycle = visit(child)
            if cycle:
                return cycle
        path.pop()
        visiting.discard(node)
        done.add(node)
        return None

    for start in table:
        cycle = visit(start)
        if cycle:
            return cycle
    return None


def validate_acyclic(
    table: Mapping[ResourceType, Iterable[ResourceType]],
    table_name: str = "dependency table",
) -> None:
    """
    Raises
    ------
    DependencyCycleError
        If ``table`` contains a cycle.
    """
    cycle = find_cycle(table)
    if cycle:
        raise DependencyCycleError(
            f"The {table_name} contains a cycle",
            details={"cycle": [t.value for t in cycle]},
        )


# =============================================================================
# Discovery Forest
# =============================================================================


def build_dependency_forest(
    roots: Sequence[ResourceType] = ROOT_TYPES,
    children: Mapping[ResourceType, Iterable[ResourceType]] = DISCOVERY_CHILDREN,
    rounds: int = EXPANSION_ROUNDS,
) -> Tuple[DependencyNode, ...]:
    """
    Build one discovery tree per root type.

    Round 0 holds the roots; round ``k`` attaches, to every node of round
    ``k - 1``, one child per entry of ``children``. Types without an entry
    are leaves.

    Raises
    ------
    DependencyCycleError
        If ``children`` contains a cycle.
    """
    if rounds < 0:
        raise ValueError("rounds must not be negative")
    validate_acyclic(children, "discovery table")

    def build(resource_type: ResourceType, depth: int) -> DependencyNode:
        if depth >= rounds:
            return DependencyNode(resource_type)
        return DependencyNode(
            resource_type,
            tuple(build(child, depth + 1) for child in children.get(resource_type, ())),
        )

    return tuple(build(root, 0) for root in roots)


def iter_levels(forest: Sequence[DependencyNode]) -> Iterator[List[DependencyNode]]:
    """Yield the nodes of ``forest`` level by level, roots first."""
    level = list(forest)
    while level:
        yield level
        level = [child for node in level for child in node.children]


# =============================================================================
# Deletion Order
# =============================================================================


def deletion_order(
    dependencies: Mapping[ResourceType, Iterable[ResourceType]] = DELETION_DEPENDENCIES,
    types: Optional[Collection[ResourceType]] = None,
) -> List[ResourceType]:
    """
    Order types so that every type comes after the types it depends on.

    Ties are broken by ``ResourceType`` declaration order, so the result is
    stable. With ``types`` given, only those types are returned, still in
    the order of the full table.

    Raises
    ------
    DependencyCycleError
        If ``dependencies`` contains a cycle.
    """
    validate_acyclic(dependencies, "deletion table")

    rank = {t: i for i, t in enumerate(ResourceType)}
    nodes: Set[ResourceType] = set(dependencies)
    for deps in dependencies.values():
        nodes.update(deps)

    remaining: Dict[ResourceType, int] = {n: 0 for n in nodes}
    dependents: Dict[ResourceType, List[ResourceType]] = {n: [] for n in nodes}
    for resource_type, deps in dependencies.items():
        for dep in set(deps):
            remaining[resource_type] += 1
            dependents[dep].append(resource_type)

    ready = [(rank[n], n) for n, count in remaining.items() if count == 0]
    heapq.heapify(ready)
    order: List[ResourceType] = []
    while ready:
        _, node = heapq.heappop(ready)
        order.append(node)
        for dependent in dependents[node]:
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, (rank[dependent], dependent))

    if types is not None:
        wanted = set(types)
        order = [t for t in order if t in wanted]
    return order


def _reachable(
    table: Mapping[ResourceType, Iterable[ResourceType]],
    start: ResourceType,
) -> Set[ResourceType]:
    seen: Set[ResourceType] = set()
    stack = list(table.get(start, ()))
    while stack:
        node = stack.pop()
        if node not in seen:
            seen.add(node)
            stack.extend(table.get(node, ()))
    return seen


def check_tables(
    registered: Collection[ResourceType],
    roots: Sequence[ResourceType] = ROOT_TYPES,
    discovery: Mapping[ResourceType, Iterable[ResourceType]] = DISCOVERY_CHILDREN,
    dependencies: Mapping[ResourceType, Iterable[ResourceType]] = DELETION_DEPENDENCIES,
) -> None:
    """
    Check that the discovery table, the deletion table and the deleter
    registry agree.

    Raises
    ------
    DependencyCycleError
        If either table contains a cycle.
    GraphConsistencyError
        If a discovered type has no deleter or no place in the deletion
        order, if a registered type is missing from the deletion table, or
        if a discovery edge is not ordered by the deletion table.
    """
    validate_acyclic(discovery, "discovery table")
    validate_acyclic(dependencies, "deletion table")

    problems: List[str] = []
    discovered: Set[ResourceType] = set(roots) | set(discovery)
    for children in discovery.values():
        discovered.update(children)

    ordered: Set[ResourceType] = set(dependencies)
    for deps in dependencies.values():
        ordered.update(deps)

    for resource_type in sorted(discovered | ordered, key=lambda t: t.value):
        if resource_type not in registered:
            problems.append(f"{resource_type.value} has no deleter")

    for resource_type in sorted(discovered, key=lambda t: t.value):
        if resource_type not in ordered:
            problems.append(f"{resource_type.value} is discovered but not in the deletion table")

    for resource_type in sorted(registered, key=lambda t: t.value):
        if resource_type not in dependencies:
            problems.append(f"{resource_type.value} has a deleter but no deletion table entry")

    for parent, children in discovery.items():
        parent_deps = _reachable(dependencies, parent)
        for child in children:
            if child not in parent_deps and parent not in _reachable(dependencies, child):
                problems.append(
                    f"{parent.value} -> {child.value} is not ordered by the deletion table"
                )

    if problems:
        raise GraphConsistencyError(
            "Dependency tables are inconsistent",
            details={"problems": problems},
        )


# Built once at import; both are immutable
DISCOVERY_FOREST: Tuple[DependencyNode, ...] = build_dependency_forest()
DELETE_ORDER: Tuple[ResourceType, ...] = tuple(deletion_order())
