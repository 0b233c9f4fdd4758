"""Forest derivation and document diffing.

``build_hierarchy`` buckets entities under their declared parents. Dangling,
self-referencing, and cyclic edges never crash: such entities fall back to
the root bucket so every entity stays reachable exactly once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .types import Document, Entity


@dataclass(frozen=True)
class Hierarchy:
    """``parent id -> ordered children`` with ``None`` as the synthetic root."""

    children: dict[str | None, tuple[Entity, ...]] = field(default_factory=dict)
    parents: dict[str, str] = field(default_factory=dict)

    def roots(self) -> tuple[Entity, ...]:
        return self.children.get(None, ())

    def children_of(self, entity_id: str | None) -> tuple[Entity, ...]:
        if entity_id is None:
            return self.roots()
        return self.children.get(entity_id.upper(), ())

    def parent_of(self, entity_id: str) -> str | None:
        return self.parents.get(entity_id.upper())

    def descendants(self, entity_id: str) -> list[Entity]:
        """Every entity below ``entity_id`` in breadth-first order."""
        found: list[Entity] = []
        visited = {entity_id.upper()}
        frontier = [entity_id]
        while frontier:
            next_frontier: list[str] = []
            for current in frontier:
                for child in self.children_of(current):
                    key = child.id.upper()
                    if key in visited:
                        continue
                    visited.add(key)
                    found.append(child)
                    next_frontier.append(child.id)
            frontier = next_frontier
        return found


def _reachable_from_root(parent_of: dict[str, str], entity_ids: list[str]) -> set[str]:
    """Ids whose parent chain terminates at the root without revisiting a node."""
    reachable: set[str] = set()
    for entity_id in entity_ids:
        chain: list[str] = []
        seen: set[str] = set()
        current: str | None = entity_id
        ok = False
        while current is not None:
            if current in reachable:
                ok = True
                break
            if current in seen:
                break
            seen.add(current)
            chain.append(current)
            current = parent_of.get(current)
        else:
            ok = True
        if ok:
            reachable.update(chain)
    return reachable


def build_hierarchy(document: Document) -> Hierarchy:
    """Bucket entities by declared parent, preserving file order within buckets."""
    by_id = {entity.id.upper(): entity for entity in document.entities}
    parent_of: dict[str, str] = {}
    for edge in document.hierarchy_edges:
        child = edge.child_id.upper()
        parent = edge.parent_id.upper()
        if child == parent or child not in by_id or parent not in by_id:
            continue
        parent_of.setdefault(child, parent)

    reachable = _reachable_from_root(parent_of, list(by_id))
    for entity_id in list(parent_of):
        if entity_id not in reachable:
            del parent_of[entity_id]

    buckets: dict[str | None, list[Entity]] = {None: []}
    for entity in document.entities:
        parent = parent_of.get(entity.id.upper())
        buckets.setdefault(parent, []).append(entity)
    return Hierarchy(
        children={key: tuple(value) for key, value in buckets.items()},
        parents=dict(parent_of),
    )


class ChangeKind(Enum):
    GROUPING_ADDED = "grouping_added"
    GROUPING_REMOVED = "grouping_removed"
    PROJECT_ADDED = "project_added"
    PROJECT_REMOVED = "project_removed"


@dataclass(frozen=True)
class EntityChange:
    kind: ChangeKind
    entity: Entity


def _diff_key(entity: Entity) -> tuple[str, str]:
    return entity.type_id.upper(), str(entity.location)


def diff_documents(old: Document | None, new: Document) -> list[EntityChange]:
    """Additions and removals keyed on ``(type id, location)``; removals first."""
    old_entities = old.entities if old is not None else ()
    old_keys = {_diff_key(entity) for entity in old_entities}
    new_keys = {_diff_key(entity) for entity in new.entities}

    changes: list[EntityChange] = []
    for entity in old_entities:
        if _diff_key(entity) not in new_keys:
            kind = ChangeKind.GROUPING_REMOVED if entity.is_grouping else ChangeKind.PROJECT_REMOVED
            changes.append(EntityChange(kind, entity))
    for entity in new.entities:
        if _diff_key(entity) not in old_keys:
            kind = ChangeKind.GROUPING_ADDED if entity.is_grouping else ChangeKind.PROJECT_ADDED
            changes.append(EntityChange(kind, entity))
    return changes
