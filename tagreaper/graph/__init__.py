"""
Dependency graph: discovery forest, deletion order and graph expansion.
"""

from tagreaper.graph.dependency import (
    DELETE_ORDER,
    DELETION_DEPENDENCIES,
    DISCOVERY_CHILDREN,
    DISCOVERY_FOREST,
    ROOT_TYPES,
    DependencyNode,
    build_dependency_forest,
    check_tables,
    deletion_order,
    find_cycle,
)
from tagreaper.graph.expansion import EXPANSION_RULES, fill_dependency_graph

__all__ = [
    "DELETE_ORDER",
    "DELETION_DEPENDENCIES",
    "DISCOVERY_CHILDREN",
    "DISCOVERY_FOREST",
    "EXPANSION_RULES",
    "ROOT_TYPES",
    "DependencyNode",
    "build_dependency_forest",
    "check_tables",
    "deletion_order",
    "fill_dependency_graph",
    "find_cycle",
]
