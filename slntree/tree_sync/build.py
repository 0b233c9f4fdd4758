"""Tree construction from a ``SolutionModel`` and lazy child loaders."""

from __future__ import annotations

from pathlib import Path

from .. import identity as ids
from ..collaborators import DEPENDENCY_CATEGORIES, DependencyItem, DirectoryItem
from ..solution_model import Entity, SolutionModel
from .nesting import NestedFile, nest_files
from .types import NodeState, TreeNode


def _sort_key(name: str) -> tuple[str, str]:
    return name.casefold(), name


def _project_node(entity: Entity, startup_path: Path | None) -> TreeNode:
    path = Path(entity.location)
    identity = ids.ProjectIdentity(path=path)
    return TreeNode(
        token=ids.encode(identity),
        identity=identity,
        name=entity.name,
        has_children=True,
        is_startup=startup_path is not None and path == startup_path,
    )


def _grouping_node(
    model: SolutionModel,
    entity: Entity,
    parent_id: str | None,
    startup_path: Path | None,
    visited: set[str],
) -> TreeNode:
    visited.add(entity.id.upper())
    identity = ids.GroupingFolderIdentity(
        name=entity.name,
        solution_path=model.solution_path,
        entity_id=entity.id,
        parent_id=parent_id,
    )
    children = _entity_children(model, model.hierarchy.children_of(entity.id), entity.id, startup_path, visited)
    grouping = model.groupings.get(entity.id.upper())
    item_paths = grouping.item_paths() if grouping is not None else []
    items = []
    for path in sorted(item_paths, key=lambda p: _sort_key(p.name)):
        item_identity = ids.GroupedItemIdentity(name=path.name, grouping_id=entity.id, path=path)
        items.append(TreeNode(token=ids.encode(item_identity), identity=item_identity, name=path.name))
    children.extend(items)
    return TreeNode(
        token=ids.encode(identity),
        identity=identity,
        name=entity.name,
        children=children,
        has_children=bool(children),
        is_loaded=True,
    )


def _entity_children(
    model: SolutionModel,
    entities: tuple[Entity, ...],
    parent_id: str | None,
    startup_path: Path | None,
    visited: set[str],
) -> list[TreeNode]:
    """Folders first, then projects, each alphabetical."""
    folders = sorted((e for e in entities if e.is_grouping), key=lambda e: _sort_key(e.name))
    projects = sorted((e for e in entities if not e.is_grouping), key=lambda e: _sort_key(e.name))
    nodes: list[TreeNode] = []
    for entity in folders:
        if entity.id.upper() in visited:
            continue
        nodes.append(_grouping_node(model, entity, parent_id, startup_path, visited))
    for entity in projects:
        nodes.append(_project_node(entity, startup_path))
    return nodes


def build_solution_tree(model: SolutionModel, startup_path: Path | None = None) -> TreeNode:
    """Build a fresh tree; only the root and grouping folders come pre-loaded."""
    identity = ids.RootIdentity(path=model.solution_path)
    children = _entity_children(model, model.hierarchy.roots(), None, startup_path, set())
    return TreeNode(
        token=ids.encode(identity),
        identity=identity,
        name=model.solution_path.stem,
        children=children,
        has_children=bool(children),
        is_loaded=True,
        state=NodeState.EXPANDED,
    )


def _nested_file_node(project_path: Path, nested: NestedFile) -> TreeNode:
    identity = ids.FileIdentity(path=nested.item.path, project_path=project_path)
    children = [_nested_file_node(project_path, child) for child in nested.children]
    return TreeNode(
        token=ids.encode(identity),
        identity=identity,
        name=nested.item.name,
        children=children,
        has_children=bool(children),
        is_loaded=bool(children),
    )


def directory_child_nodes(project_path: Path, items: list[DirectoryItem]) -> list[TreeNode]:
    """Directories stay lazy; files carry their nested dependents pre-loaded."""
    nodes: list[TreeNode] = []
    for nested in nest_files(items):
        item = nested.item
        if not item.is_dir:
            nodes.append(_nested_file_node(project_path, nested))
            continue
        identity = ids.DirectoryIdentity(project_path=project_path, path=item.path)
        nodes.append(TreeNode(token=ids.encode(identity), identity=identity, name=item.name, has_children=True))
    return nodes


def dependency_container_node(project_path: Path) -> TreeNode:
    identity = ids.DependencyContainerIdentity(project_path=project_path)
    return TreeNode(token=ids.encode(identity), identity=identity, name="Dependencies", has_children=True)


def dependency_category_nodes(project_path: Path, dependencies: list[DependencyItem]) -> list[TreeNode]:
    present = {dependency.category for dependency in dependencies}
    nodes: list[TreeNode] = []
    for category in DEPENDENCY_CATEGORIES:
        if category not in present:
            continue
        identity = ids.DependencyCategoryIdentity(project_path=project_path, name=category)
        nodes.append(TreeNode(token=ids.encode(identity), identity=identity, name=category, has_children=True))
    return nodes


def dependency_nodes(project_path: Path, category: str, dependencies: list[DependencyItem]) -> list[TreeNode]:
    nodes: list[TreeNode] = []
    for dependency in dependencies:
        if dependency.category != category:
            continue
        identity = ids.DependencyIdentity(
            project_path=project_path,
            category=category,
            name=dependency.name,
            version=dependency.version,
        )
        label = f"{dependency.name} ({dependency.version})" if dependency.version else dependency.name
        nodes.append(TreeNode(token=ids.encode(identity), identity=identity, name=label))
    return nodes
