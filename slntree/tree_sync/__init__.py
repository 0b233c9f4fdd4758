"""Lazy tree synchronization over a ``SolutionModel``.

Defines ``TreeNode`` and ``TreeSyncController`` plus the build, merge,
debounce, persistence, and rendering helpers it composes.
"""

from __future__ import annotations

from .build import build_solution_tree
from .controller import LAZY_KINDS, TreeSyncController, TreeSyncDeps
from .debounce import Debouncer, RapidUpdateGuard
from .merge import collect_expanded_tokens, find_node, index_nodes, iter_nodes, merge_tree_states
from .rendering import format_tree
from .types import NodeState, TreeNode

__all__ = [
    "NodeState",
    "TreeNode",
    "TreeSyncController",
    "TreeSyncDeps",
    "LAZY_KINDS",
    "build_solution_tree",
    "merge_tree_states",
    "collect_expanded_tokens",
    "find_node",
    "index_nodes",
    "iter_nodes",
    "Debouncer",
    "RapidUpdateGuard",
    "format_tree",
]
