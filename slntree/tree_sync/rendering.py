"""Plain-text tree rows for terminal output."""

from __future__ import annotations

from .types import NodeState, TreeNode

_MARKERS = {
    NodeState.EXPANDED: "▾",
    NodeState.EXPANDING: "…",
    NodeState.COLLAPSING: "▸",
    NodeState.COLLAPSED: "▸",
}


def format_node(node: TreeNode, depth: int) -> str:
    marker = _MARKERS[node.state] if node.has_children else " "
    suffix = " (startup)" if node.is_startup else ""
    return f"{'  ' * depth}{marker} {node.name}{suffix}"


def format_tree(root: TreeNode | None) -> list[str]:
    """Render visible rows: children of collapsed nodes are hidden."""
    if root is None:
        return []
    rows: list[str] = []
    stack: list[tuple[TreeNode, int]] = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        rows.append(format_node(node, depth))
        if node.expanded:
            for child in reversed(node.children):
                stack.append((child, depth + 1))
    return rows
