"""Merge a freshly built tree with the previously rendered one.

Nodes are matched by token. Expansion and loading state always carry over;
lazily loaded children carry over only for nodes that were expanded, since
their content is not part of a rebuild.
"""

from __future__ import annotations

from collections.abc import Iterator

from .types import NodeState, TreeNode


def iter_nodes(root: TreeNode) -> Iterator[TreeNode]:
    """Yield ``root`` and every descendant depth-first in display order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def index_nodes(root: TreeNode | None) -> dict[str, TreeNode]:
    if root is None:
        return {}
    index: dict[str, TreeNode] = {}
    for node in iter_nodes(root):
        index.setdefault(node.token, node)
    return index


def find_node(root: TreeNode | None, token: str) -> TreeNode | None:
    if root is None:
        return None
    for node in iter_nodes(root):
        if node.token == token:
            return node
    return None


def find_parent(root: TreeNode | None, token: str) -> TreeNode | None:
    if root is None:
        return None
    for node in iter_nodes(root):
        for child in node.children:
            if child.token == token:
                return node
    return None


def collect_expanded_tokens(root: TreeNode | None) -> list[str]:
    """Tokens of expanded nodes below the root, in display order."""
    if root is None:
        return []
    return [node.token for node in iter_nodes(root) if node is not root and node.expanded]


def merge_tree_states(fresh: TreeNode, cached: TreeNode | None) -> TreeNode:
    """Carry expansion state and loaded children from ``cached`` into ``fresh``."""
    previous = index_nodes(cached)
    if not previous:
        return fresh

    def visit(node: TreeNode) -> None:
        old = previous.get(node.token)
        if old is not None and node is not fresh:
            if old.state is NodeState.COLLAPSING:
                node.state = NodeState.COLLAPSED
            else:
                node.state = old.state
            if not node.is_loaded and old.is_loaded and old.state in (NodeState.EXPANDED, NodeState.EXPANDING):
                node.children = old.children
                node.has_children = node.has_children or bool(old.children)
                node.is_loaded = True
                return
        if node.is_loaded:
            for child in node.children:
                visit(child)

    visit(fresh)
    return fresh
