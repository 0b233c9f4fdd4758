"""Tree node datatypes shared by tree-sync modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..identity import NodeIdentity


class NodeState(Enum):
    COLLAPSED = "collapsed"
    EXPANDING = "expanding"
    EXPANDED = "expanded"
    COLLAPSING = "collapsing"


@dataclass
class TreeNode:
    """One view node addressed by its opaque ``token``.

    ``is_loaded`` means ``children`` holds the real child list. Grouping
    folders are built loaded; projects, directories, and dependency nodes load
    on first expansion.
    """

    token: str
    identity: NodeIdentity
    name: str
    children: list[TreeNode] = field(default_factory=list)
    has_children: bool = False
    is_loaded: bool = False
    state: NodeState = NodeState.COLLAPSED
    is_startup: bool = False

    @property
    def kind(self) -> str:
        return self.identity.kind

    @property
    def expanded(self) -> bool:
        return self.state is NodeState.EXPANDED

    @property
    def loading(self) -> bool:
        return self.state is NodeState.EXPANDING
