"""Tests for merging rebuilt trees with cached ones."""

from __future__ import annotations

import unittest
from pathlib import Path

from slntree import identity as ids
from slntree.tree_sync import NodeState, TreeNode, collect_expanded_tokens, find_node, merge_tree_states
from slntree.tree_sync.merge import find_parent


def node(identity: ids.NodeIdentity, name: str, **kwargs) -> TreeNode:
    return TreeNode(token=ids.encode(identity), identity=identity, name=name, **kwargs)


def project(name: str) -> TreeNode:
    return node(ids.ProjectIdentity(path=Path(f"/w/{name}/{name}.csproj")), name, has_children=True)


def folder(name: str, children: list[TreeNode]) -> TreeNode:
    identity = ids.GroupingFolderIdentity(name=name, solution_path=Path("/w/S.sln"), entity_id=f"{{{name}}}")
    return node(identity, name, children=children, has_children=bool(children), is_loaded=True)


def file_node(path: str) -> TreeNode:
    return node(ids.FileIdentity(path=Path(path)), Path(path).name)


def root(children: list[TreeNode]) -> TreeNode:
    return node(
        ids.RootIdentity(path=Path("/w/S.sln")),
        "S",
        children=children,
        has_children=True,
        is_loaded=True,
        state=NodeState.EXPANDED,
    )


class MergeTreeStatesTests(unittest.TestCase):
    def test_without_cache_fresh_tree_is_returned(self) -> None:
        fresh = root([project("App")])

        self.assertIs(merge_tree_states(fresh, None), fresh)

    def test_expanded_lazy_node_keeps_loaded_children(self) -> None:
        cached_app = project("App")
        cached_app.children = [file_node("/w/App/Program.cs")]
        cached_app.is_loaded = True
        cached_app.state = NodeState.EXPANDED
        cached = root([cached_app])

        merged = merge_tree_states(root([project("App")]), cached)

        app = merged.children[0]
        self.assertIs(app.state, NodeState.EXPANDED)
        self.assertTrue(app.is_loaded)
        self.assertEqual([child.name for child in app.children], ["Program.cs"])

    def test_collapsed_lazy_node_does_not_carry_children(self) -> None:
        cached_app = project("App")
        cached_app.children = [file_node("/w/App/Program.cs")]
        cached_app.is_loaded = True
        cached = root([cached_app])

        merged = merge_tree_states(root([project("App")]), cached)

        self.assertFalse(merged.children[0].is_loaded)
        self.assertEqual(merged.children[0].children, [])

    def test_prebuilt_children_stay_fresh_but_keep_state(self) -> None:
        cached_inner = project("Old")
        cached_folder = folder("src", [cached_inner])
        cached_folder.state = NodeState.EXPANDED
        cached = root([cached_folder])

        fresh_folder = folder("src", [project("New")])
        merged = merge_tree_states(root([fresh_folder]), cached)

        self.assertIs(merged.children[0].state, NodeState.EXPANDED)
        self.assertEqual([child.name for child in merged.children[0].children], ["New"])

    def test_collapsing_becomes_collapsed(self) -> None:
        cached_folder = folder("src", [project("App")])
        cached_folder.state = NodeState.COLLAPSING

        merged = merge_tree_states(root([folder("src", [project("App")])]), root([cached_folder]))

        self.assertIs(merged.children[0].state, NodeState.COLLAPSED)

    def test_removed_nodes_disappear(self) -> None:
        cached = root([project("Gone"), project("Stays")])

        merged = merge_tree_states(root([project("Stays")]), cached)

        self.assertEqual([child.name for child in merged.children], ["Stays"])


class LookupTests(unittest.TestCase):
    def test_find_and_collect(self) -> None:
        app = project("App")
        app.state = NodeState.EXPANDED
        src = folder("src", [app])
        tree = root([src])

        self.assertIs(find_node(tree, app.token), app)
        self.assertIs(find_parent(tree, app.token), src)
        self.assertIsNone(find_node(tree, "missing"))
        self.assertEqual(collect_expanded_tokens(tree), [app.token])


if __name__ == "__main__":
    unittest.main()
