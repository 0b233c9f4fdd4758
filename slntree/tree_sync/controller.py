"""Lazy, incrementally synchronized solution tree.

``TreeSyncController`` keeps one ``TreeNode`` tree in step with a
``SolutionModel``. Model change events are debounced into full rebuilds that
are merged with the previous tree, so expansion state and already-loaded
children survive. Bursts of updates trip a rapid-update guard that snapshots
the expanded set and makes the next rebuild restore exactly that snapshot.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from .. import identity as ids
from ..collaborators import (
    DependencyItem,
    DependencyLister,
    DirectoryLister,
    Notifier,
    PackageOperations,
    RenameProvider,
)
from ..config import Settings
from ..errors import ExternalCollaboratorError, MutationReport
from ..solution_model import ChangeEvent, SolutionModel, Subscription
from .build import (
    build_solution_tree,
    dependency_category_nodes,
    dependency_container_node,
    dependency_nodes,
    directory_child_nodes,
)
from .debounce import Debouncer, RapidUpdateGuard
from .merge import collect_expanded_tokens, find_node, find_parent, iter_nodes, merge_tree_states
from .persistence import load_expanded_tokens, save_expanded_tokens
from .types import NodeState, TreeNode

logger = logging.getLogger(__name__)

LAZY_KINDS = frozenset(
    {
        ids.ProjectIdentity.kind,
        ids.DirectoryIdentity.kind,
        ids.DependencyContainerIdentity.kind,
        ids.DependencyCategoryIdentity.kind,
    }
)


@dataclass(frozen=True)
class TreeSyncDeps:
    """Collaborators used to load children and act on nodes."""

    directory_lister: DirectoryLister
    dependency_lister: DependencyLister
    notifier: Notifier
    package_operations: PackageOperations | None = None
    rename_provider: RenameProvider | None = None
    load_expanded: Callable[[str], list[str]] = load_expanded_tokens
    save_expanded: Callable[[str, list[str]], None] = save_expanded_tokens


class TreeSyncController:
    def __init__(
        self,
        model: SolutionModel,
        deps: TreeSyncDeps,
        settings: Settings | None = None,
        monotonic: Callable[[], float] = time.monotonic,
        state_key: str | None = None,
    ) -> None:
        self.model = model
        self.deps = deps
        self.settings = settings or model.settings
        self.state_key = state_key or str(model.solution_path)
        self.root: TreeNode | None = None
        self.debouncer = Debouncer(self.settings.debounce_seconds, monotonic)
        self.guard = RapidUpdateGuard(
            self.settings.rapid_update_threshold,
            self.settings.rapid_update_window_seconds,
            monotonic,
        )
        self.rebuild_count = 0
        self._protected: list[str] | None = None
        self._manual_depth = 0
        self._model_subscription: Subscription | None = None
        self._listeners: dict[int, Callable[[TreeNode], None]] = {}
        self._next_listener = 0

    def start(self) -> TreeNode:
        """Subscribe to the model and build the first tree from persisted state."""
        if self._model_subscription is None:
            self._model_subscription = self.model.subscribe(self._on_model_change)
        return self.rebuild()

    def subscribe(self, callback: Callable[[TreeNode], None]) -> Subscription:
        key = self._next_listener
        self._next_listener += 1
        self._listeners[key] = callback
        return Subscription(lambda: self._listeners.pop(key, None))

    def _emit(self) -> None:
        if self.root is None:
            return
        for callback in list(self._listeners.values()):
            callback(self.root)

    @contextmanager
    def _manual(self) -> Iterator[None]:
        self._manual_depth += 1
        try:
            yield
        finally:
            self._manual_depth -= 1

    def _on_model_change(self, event: ChangeEvent) -> None:
        self.notify_change(event.reason, manual=self._manual_depth > 0)

    def notify_change(self, reason: str, manual: bool = False) -> None:
        """Schedule a debounced rebuild; automatic bursts arm the protected snapshot."""
        if not manual and self.guard.record() and self._protected is None:
            self._protected = collect_expanded_tokens(self.root)
            logger.debug("rapid updates; protecting %d expanded nodes", len(self._protected))
        self.debouncer.trigger(reason)

    def tick(self) -> bool:
        """Rebuild when the debounce window has elapsed."""
        reasons = self.debouncer.take()
        if reasons is None:
            return False
        logger.debug("rebuilding tree after %s", ", ".join(reasons))
        self.rebuild()
        return True

    def flush(self) -> bool:
        """Rebuild now if any change is pending."""
        reasons = self.debouncer.take(force=True)
        if reasons is None:
            return False
        self.rebuild()
        return True

    def poll(self) -> bool:
        self.model.poll()
        return self.tick()

    def rebuild(self) -> TreeNode:
        fresh = build_solution_tree(self.model, self.model.startup_project_path())
        self.rebuild_count += 1
        if self._protected is not None:
            tokens, self._protected = self._protected, None
            self.root = fresh
            self._restore(tokens)
            self._persist()
        elif self.root is None:
            self.root = fresh
            self._restore(self.deps.load_expanded(self.state_key))
            self._persist()
        else:
            self.root = merge_tree_states(fresh, self.root)
            self._refresh_loaded()
        self._emit()
        return self.root

    def _restore(self, tokens: list[str]) -> None:
        """Expand every resolvable token; unresolvable ones are dropped."""
        remaining = list(tokens)
        progress = True
        while remaining and progress:
            progress = False
            pending: list[str] = []
            for token in remaining:
                node = find_node(self.root, token)
                if node is None:
                    pending.append(token)
                    continue
                progress = True
                self._expand_node(node, quiet=True)
            remaining = pending
        if remaining:
            logger.debug("discarded %d unresolved expanded tokens", len(remaining))

    def _refresh_loaded(self) -> None:
        """Reload children of expanded lazy nodes, keeping cached ones on failure."""
        if self.root is None:
            return
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.expanded and node.kind in LAZY_KINDS and node.is_loaded:
                try:
                    children = self._load_children(node)
                except (ExternalCollaboratorError, OSError) as exc:
                    logger.warning("keeping cached children of %s: %s", node.name, exc)
                else:
                    self._attach_children(node, children)
            stack.extend(reversed(node.children))

    def _attach_children(self, node: TreeNode, children: list[TreeNode]) -> None:
        holder = TreeNode(
            token=node.token,
            identity=node.identity,
            name=node.name,
            children=children,
            is_loaded=True,
        )
        merge_tree_states(holder, node)
        node.children = holder.children
        node.has_children = bool(children)
        node.is_loaded = True

    def _load_children(self, node: TreeNode) -> list[TreeNode]:
        identity = node.identity
        if isinstance(identity, ids.ProjectIdentity):
            items = self.deps.directory_lister.list_children(identity.path.parent)
            items = [item for item in items if item.path != identity.path]
            return [dependency_container_node(identity.path), *directory_child_nodes(identity.path, items)]
        if isinstance(identity, ids.DirectoryIdentity):
            items = self.deps.directory_lister.list_children(identity.path)
            return directory_child_nodes(identity.project_path, items)
        if isinstance(identity, ids.DependencyContainerIdentity):
            dependencies = self.deps.dependency_lister.list_dependencies(identity.project_path)
            return dependency_category_nodes(identity.project_path, dependencies)
        if isinstance(identity, ids.DependencyCategoryIdentity):
            dependencies = self.deps.dependency_lister.list_dependencies(identity.project_path)
            return dependency_nodes(identity.project_path, identity.name, dependencies)
        return node.children

    def _watch_target(self, node: TreeNode) -> tuple[Path, Path] | None:
        """Return ``(project_path, directory)`` for nodes backed by a directory."""
        identity = node.identity
        if isinstance(identity, ids.ProjectIdentity):
            return identity.path, identity.path.parent
        if isinstance(identity, ids.DirectoryIdentity):
            return identity.project_path, identity.path
        return None

    def _set_watch(self, node: TreeNode, watching: bool) -> None:
        target = self._watch_target(node)
        if target is None:
            return
        project_path, directory = target
        project = self.model.project_for_path(project_path)
        if project is None:
            return
        if watching:
            project.watch_directory(directory)
        else:
            project.unwatch_directory(directory)

    def _expand_node(self, node: TreeNode, quiet: bool = False) -> bool:
        if node.state in (NodeState.EXPANDED, NodeState.EXPANDING):
            return node.state is NodeState.EXPANDED
        if node.is_loaded and not node.has_children and node.kind not in LAZY_KINDS:
            return False
        if not node.is_loaded and node.kind not in LAZY_KINDS:
            return False

        node.state = NodeState.EXPANDING
        if not quiet:
            self._emit()
        try:
            children = self._load_children(node)
        except (ExternalCollaboratorError, OSError) as exc:
            node.state = NodeState.COLLAPSED
            logger.error("could not expand %s: %s", node.name, exc)
            self.deps.notifier.error(f"Could not expand {node.name}: {exc}")
            if not quiet:
                self._emit()
            return False

        if node.kind in LAZY_KINDS:
            self._attach_children(node, children)
        node.state = NodeState.EXPANDED
        self._set_watch(node, True)
        return True

    def expand(self, token: str) -> bool:
        node = find_node(self.root, token)
        if node is None:
            return False
        if node.expanded:
            return True
        expanded = self._expand_node(node)
        if expanded:
            self._persist()
            self._emit()
        return expanded

    def collapse(self, token: str) -> bool:
        node = find_node(self.root, token)
        if node is None or node is self.root or node.state is not NodeState.EXPANDED:
            return False
        node.state = NodeState.COLLAPSING
        self._set_watch(node, False)
        node.state = NodeState.COLLAPSED
        self._persist()
        self._emit()
        return True

    def expanded_tokens(self) -> list[str]:
        return collect_expanded_tokens(self.root)

    def _persist(self) -> None:
        self.deps.save_expanded(self.state_key, collect_expanded_tokens(self.root))

    def _decode(self, token: str) -> ids.NodeIdentity | None:
        identity, error = ids.try_decode(token)
        if error is not None:
            logger.warning("rejected node token: %s", error.reason)
            self.deps.notifier.error("Invalid tree node reference")
        return identity

    def rename_node(self, token: str, new_name: str) -> MutationReport:
        """Rename a grouping folder through the model, or a file or directory on disk."""
        identity = self._decode(token)
        if identity is None:
            return MutationReport(reason="invalid token", failed_steps=["rename"])
        with self._manual():
            if isinstance(identity, ids.GroupingFolderIdentity):
                return self.model.rename_grouping(identity.name, new_name, entity_id=identity.entity_id)
            if isinstance(identity, (ids.FileIdentity, ids.DirectoryIdentity)):
                return self._rename_path(identity.path, new_name)
        return MutationReport(reason=f"{identity.kind} nodes cannot be renamed", failed_steps=["rename"])

    def _rename_path(self, path: Path, new_name: str) -> MutationReport:
        provider = self.deps.rename_provider
        if provider is None:
            return MutationReport(reason="no rename provider", failed_steps=["rename"])
        try:
            provider.rename(path, path.with_name(new_name))
        except ExternalCollaboratorError as exc:
            logger.error("%s", exc)
            self.deps.notifier.error(str(exc))
            return MutationReport(reason=str(exc), failed_steps=["rename"])
        self.notify_change("renamed", manual=True)
        return MutationReport(changed=True, applied_steps=["rename"])

    def remove_dependency(self, token: str) -> MutationReport:
        identity = self._decode(token)
        if not isinstance(identity, ids.DependencyIdentity):
            return MutationReport(reason="not a dependency", failed_steps=["remove dependency"])
        operations = self.deps.package_operations
        if operations is None:
            return MutationReport(reason="no package operations", failed_steps=["remove dependency"])
        dependency = DependencyItem(category=identity.category, name=identity.name, version=identity.version)
        try:
            operations.remove_dependency(identity.project_path, dependency)
        except ExternalCollaboratorError as exc:
            logger.error("%s", exc)
            self.deps.notifier.error(str(exc))
            return MutationReport(reason=str(exc), failed_steps=["remove dependency"])
        self.notify_change("dependency removed", manual=True)
        return MutationReport(changed=True, applied_steps=["remove dependency"])

    def new_transient_child(self, parent_token: str, node_kind: str) -> TreeNode | None:
        """Insert an uncommitted placeholder as the first child of an expanded node."""
        parent = find_node(self.root, parent_token)
        if parent is None:
            return None
        parent_identity = parent.identity
        parent_path = getattr(parent_identity, "path", None) or getattr(parent_identity, "solution_path", None)
        if parent_path is None:
            parent_path = self.model.solution_path
        identity = ids.new_transient(parent_path, node_kind)
        node = TreeNode(token=ids.encode(identity), identity=identity, name="")
        if not parent.expanded:
            self._expand_node(parent)
        parent.children.insert(0, node)
        parent.has_children = True
        self._emit()
        return node

    def cancel_transient(self, token: str) -> bool:
        parent = find_parent(self.root, token)
        if parent is None:
            return False
        parent.children = [child for child in parent.children if child.token != token]
        parent.has_children = bool(parent.children) or parent.kind in LAZY_KINDS
        self._emit()
        return True

    def nodes(self) -> list[TreeNode]:
        return list(iter_nodes(self.root)) if self.root is not None else []

    def dispose(self) -> None:
        if self._model_subscription is not None:
            self._model_subscription.dispose()
            self._model_subscription = None
        self.debouncer.cancel()
        self.guard.reset()
        self._listeners.clear()
        self._protected = None
        self.root = None
