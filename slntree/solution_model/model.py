"""Long-lived solution aggregate.

``SolutionModel`` owns the current ``Document``, one ``ProjectModel`` per real
project and one ``GroupingModel`` per grouping folder. It polls the backing
file, re-parses on change, diffs against the previous document, and notifies
subscribers. Mutations are read-modify-write against the on-disk text; the
resulting write is picked up by an immediate reload.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ..collaborators import ExternalProjectCommand, LoggingNotifier, Notifier
from ..config import Settings
from ..errors import ExternalCollaboratorError, MutationReport, ParseError
from . import mutator
from .hierarchy import EntityChange, Hierarchy, build_hierarchy, diff_documents
from .parser import parse, resolve_location
from .types import Document, Entity
from .user_file import SolutionUserFile
from .watch import build_directory_watch_signature, file_signature

logger = logging.getLogger(__name__)


class Subscription:
    """Disposable handle returned by ``subscribe``; disposing twice is harmless."""

    def __init__(self, on_dispose: Callable[[], None]) -> None:
        self._on_dispose: Callable[[], None] | None = on_dispose

    @property
    def disposed(self) -> bool:
        return self._on_dispose is None

    def dispose(self) -> None:
        callback, self._on_dispose = self._on_dispose, None
        if callback is not None:
            callback()


@dataclass(frozen=True)
class ChangeEvent:
    reason: str
    document: Document
    changes: tuple[EntityChange, ...] = ()
    project_path: Path | None = None


class ProjectModel:
    """Per-project sub-model tracking directories the view has expanded."""

    def __init__(self, entity: Entity, settings: Settings) -> None:
        self.entity = entity
        self.settings = settings
        self.path = Path(entity.location)
        self.directory = self.path.parent
        self.watched_directories: set[Path] = set()
        self.disposed = False
        self._signature = self._compute_signature()

    def _compute_signature(self) -> str:
        directories = build_directory_watch_signature(
            self.directory,
            self.watched_directories,
            skip_dirs=self.settings.skip_directories,
            show_hidden=self.settings.show_hidden,
        )
        return file_signature(self.path) + directories

    def watch_directory(self, directory: Path) -> None:
        if self.disposed:
            return
        self.watched_directories.add(directory)
        self._signature = self._compute_signature()

    def unwatch_directory(self, directory: Path) -> None:
        """Stop watching ``directory`` and everything below it."""
        self.watched_directories = {
            path for path in self.watched_directories if path != directory and not path.is_relative_to(directory)
        }
        if not self.disposed:
            self._signature = self._compute_signature()

    def poll(self) -> bool:
        """Return True when the project file or a watched directory changed."""
        if self.disposed:
            return False
        signature = self._compute_signature()
        if signature == self._signature:
            return False
        self._signature = signature
        return True

    def dispose(self) -> None:
        self.disposed = True
        self.watched_directories.clear()


class GroupingModel:
    """Grouping folder with its grouped items resolved to absolute paths."""

    def __init__(self, entity: Entity, base_path: Path) -> None:
        self.entity = entity
        self.base_path = base_path

    @property
    def name(self) -> str:
        return self.entity.name

    def item_paths(self) -> list[Path]:
        return [resolve_location(self.base_path, item) for item in self.entity.grouped_items()]


@dataclass
class _Subscribers:
    callbacks: dict[int, Callable[[ChangeEvent], None]] = field(default_factory=dict)
    next_key: int = 0


class SolutionModel:
    def __init__(
        self,
        solution_path: Path,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
        project_command: ExternalProjectCommand | None = None,
    ) -> None:
        self.solution_path = Path(solution_path)
        self.settings = settings or Settings()
        self.notifier = notifier or LoggingNotifier()
        self.project_command = project_command
        self.user_file = SolutionUserFile(self.solution_path)
        self.projects: dict[str, ProjectModel] = {}
        self.groupings: dict[str, GroupingModel] = {}
        self.disposed = False
        self._document: Document | None = None
        self._hierarchy: Hierarchy | None = None
        self._signature: str | None = None
        self._subscribers = _Subscribers()

    @property
    def base_path(self) -> Path:
        return self.solution_path.parent

    @property
    def document(self) -> Document:
        if self._document is None:
            raise RuntimeError("solution model is not open")
        return self._document

    @property
    def hierarchy(self) -> Hierarchy:
        if self._hierarchy is None:
            self._hierarchy = build_hierarchy(self.document)
        return self._hierarchy

    def _current_signature(self) -> str:
        return file_signature(self.solution_path, self.user_file.path)

    def _read_text(self) -> str:
        try:
            return self.solution_path.read_text(encoding="utf-8-sig")
        except OSError as exc:
            raise ExternalCollaboratorError("read solution", str(self.solution_path), exc) from exc

    def _write_text(self, text: str) -> None:
        try:
            with self.solution_path.open("w", encoding="utf-8", newline="") as handle:
                handle.write(text)
        except OSError as exc:
            raise ExternalCollaboratorError("write solution", str(self.solution_path), exc) from exc

    def open(self) -> Document:
        """Parse the backing file and install it; ``ParseError`` propagates."""
        text = self._read_text()
        document = parse(text, self.base_path)
        self._signature = self._current_signature()
        self._install(document, "opened")
        logger.info("opened %s with %d entities", self.solution_path, len(document.entities))
        return document

    def reload(self, reason: str = "reloaded") -> bool:
        """Re-parse the backing file; failures keep the last-known-good document."""
        try:
            text = self._read_text()
            document = parse(text, self.base_path)
        except (ExternalCollaboratorError, ParseError) as exc:
            logger.error("reload of %s failed: %s", self.solution_path, exc)
            self.notifier.error(f"Could not reload {self.solution_path.name}: {exc}")
            return False
        self._signature = self._current_signature()
        self._install(document, reason)
        return True

    def _install(self, document: Document, reason: str) -> None:
        changes = diff_documents(self._document, document)

        fresh_projects: dict[str, ProjectModel] = {}
        for entity in document.projects():
            key = entity.id.upper()
            current = self.projects.get(key)
            if current is not None and current.entity.location == entity.location:
                current.entity = entity
                fresh_projects[key] = current
            else:
                fresh_projects[key] = ProjectModel(entity, self.settings)
        for key, stale in self.projects.items():
            if fresh_projects.get(key) is not stale:
                stale.dispose()
        self.projects = fresh_projects
        self.groupings = {
            entity.id.upper(): GroupingModel(entity, document.base_path) for entity in document.groupings()
        }

        self._document = document
        self._hierarchy = None
        if changes:
            logger.info("%s: %d entity changes", reason, len(changes))
        self._emit(ChangeEvent(reason=reason, document=document, changes=tuple(changes)))

    def subscribe(self, callback: Callable[[ChangeEvent], None]) -> Subscription:
        subscribers = self._subscribers
        key = subscribers.next_key
        subscribers.next_key += 1
        subscribers.callbacks[key] = callback
        return Subscription(lambda: subscribers.callbacks.pop(key, None))

    def _emit(self, event: ChangeEvent) -> None:
        for callback in list(self._subscribers.callbacks.values()):
            try:
                callback(event)
            except Exception:
                logger.exception("change subscriber failed for %s", event.reason)

    def poll(self) -> bool:
        """Check the backing file and watched project directories once."""
        if self.disposed or self._document is None:
            return False
        changed = False
        if self._current_signature() != self._signature:
            changed = self.reload("file_changed") or changed
        for project in list(self.projects.values()):
            if project.poll():
                changed = True
                self._emit(ChangeEvent(reason="project_changed", document=self.document, project_path=project.path))
        return changed

    def project_for_path(self, project_path: Path) -> ProjectModel | None:
        wanted = Path(project_path)
        for project in self.projects.values():
            if project.path == wanted:
                return project
        return None

    def grouping_by_name(self, name: str) -> GroupingModel | None:
        for grouping in self.groupings.values():
            if grouping.name == name:
                return grouping
        return None

    def _noop(self, operation: str, reason: str) -> MutationReport:
        logger.warning("%s: nothing changed (%s)", operation, reason)
        self.notifier.warning(f"{operation}: {reason}")
        return MutationReport(changed=False, reason=reason)

    def _failed(self, operation: str, exc: ExternalCollaboratorError) -> MutationReport:
        logger.error("%s: %s", operation, exc)
        self.notifier.error(str(exc))
        return MutationReport(reason=str(exc), failed_steps=[operation])

    def _apply(self, operation: str, transform: Callable[[str], str], missing_reason: str) -> MutationReport:
        try:
            text = self._read_text()
            updated = transform(text)
            if updated == text:
                return self._noop(operation, missing_reason)
            self._write_text(updated)
        except ExternalCollaboratorError as exc:
            return self._failed(operation, exc)
        logger.info("%s applied to %s", operation, self.solution_path.name)
        self.reload(operation)
        return MutationReport(changed=True, applied_steps=[operation])

    def _find_grouping(self, name: str | None, entity_id: str | None = None) -> Entity | None:
        """Resolve a grouping by id when one is given, otherwise by its first name match.

        With both, the id must name a grouping that still carries ``name``.
        """
        if entity_id is None:
            return self.document.find_grouping(name) if name is not None else None
        entity = self.document.entity_by_id(entity_id)
        if entity is None or not entity.is_grouping:
            return None
        if name is not None and entity.name != name:
            return None
        return entity

    def add_grouping(
        self,
        name: str,
        parent_name: str | None = None,
        parent_id: str | None = None,
    ) -> MutationReport:
        """Add a grouping folder; ``report.result`` carries the new id."""
        resolved_parent: str | None = None
        if parent_name is not None or parent_id is not None:
            parent = self._find_grouping(parent_name, parent_id)
            if parent is None:
                return self._noop("add folder", f"parent folder {parent_name or parent_id!r} not found")
            resolved_parent = parent.id

        created: list[str] = []

        def transform(text: str) -> str:
            updated, entity_id = mutator.insert_grouping(text, name, parent_id=resolved_parent)
            if entity_id is not None:
                created.append(entity_id)
            return updated

        report = self._apply("add folder", transform, f"parent folder {parent_name or parent_id!r} not found")
        if created and report.changed:
            report.result = created[0]
        return report

    def remove_grouping(self, name: str | None, entity_id: str | None = None) -> MutationReport:
        grouping = self._find_grouping(name, entity_id)
        if grouping is None:
            return self._noop("remove folder", f"folder {name or entity_id!r} not found")
        return self._apply(
            "remove folder",
            lambda text: mutator.remove_grouping(text, grouping.id),
            f"folder {grouping.name!r} not found",
        )

    def _sibling_named(self, grouping: Entity, name: str) -> Entity | None:
        parent_id = self.hierarchy.parent_of(grouping.id)
        for sibling in self.hierarchy.children_of(parent_id):
            if sibling.is_grouping and sibling.name == name and sibling.id.upper() != grouping.id.upper():
                return sibling
        return None

    def rename_grouping(
        self,
        old_name: str | None,
        new_name: str,
        entity_id: str | None = None,
    ) -> MutationReport:
        """Rename one grouping; only a sibling folder under the same parent blocks the name."""
        grouping = self._find_grouping(old_name, entity_id)
        if grouping is None:
            return self._noop("rename folder", f"folder {old_name or entity_id!r} not found")
        if self._sibling_named(grouping, new_name) is not None:
            return self._noop("rename folder", f"folder {new_name!r} already exists here")
        return self._apply(
            "rename folder",
            lambda text: mutator.rename_grouping(text, grouping.id, new_name, current_name=grouping.name),
            "name unchanged",
        )

    def _item_path(self, path: Path | str) -> str:
        candidate = Path(path)
        if candidate.is_absolute():
            return mutator.relative_item_path(self.base_path, candidate)
        return mutator.normalize_item_path(str(path))

    def add_grouped_item(
        self,
        folder_name: str | None,
        path: Path | str,
        entity_id: str | None = None,
    ) -> MutationReport:
        grouping = self._find_grouping(folder_name, entity_id)
        if grouping is None:
            return self._noop("add item", f"folder {folder_name or entity_id!r} not found")
        relative = self._item_path(path)
        return self._apply(
            "add item",
            lambda text: mutator.add_grouped_item(text, grouping.id, relative),
            f"{relative} is already in {grouping.name!r}",
        )

    def add_grouped_items(
        self,
        folder_name: str | None,
        paths: Iterable[Path | str],
        entity_id: str | None = None,
    ) -> MutationReport:
        """Add several items in one write; each path is one recorded step."""
        grouping = self._find_grouping(folder_name, entity_id)
        if grouping is None:
            return self._noop("add items", f"folder {folder_name or entity_id!r} not found")

        report = MutationReport()
        try:
            text = self._read_text()
        except ExternalCollaboratorError as exc:
            return self._failed("add items", exc)
        updated = text
        for path in paths:
            relative = self._item_path(path)
            step = f"add {relative}"
            next_text = mutator.add_grouped_item(updated, grouping.id, relative)
            if next_text == updated:
                report.failed_steps.append(step)
            else:
                report.applied_steps.append(step)
                updated = next_text
        if updated != text:
            try:
                self._write_text(updated)
            except ExternalCollaboratorError as exc:
                return self._failed("add items", exc)
            report.changed = True
            self.reload("add items")
        self._warn_failed(report)
        return report

    def remove_grouped_item(
        self,
        path: Path | str,
        folder_name: str | None = None,
        entity_id: str | None = None,
    ) -> MutationReport:
        grouping_id: str | None = None
        if folder_name is not None or entity_id is not None:
            grouping = self._find_grouping(folder_name, entity_id)
            if grouping is None:
                return self._noop("remove item", f"folder {folder_name or entity_id!r} not found")
            grouping_id = grouping.id
        relative = self._item_path(path)
        return self._apply(
            "remove item",
            lambda text: mutator.remove_grouped_item(text, relative, grouping_id),
            f"{relative} is not a solution item",
        )

    def _require_project_command(self, operation: str, target: Path) -> ExternalProjectCommand:
        if self.project_command is None:
            raise ExternalCollaboratorError(operation, str(target), RuntimeError("no project command configured"))
        return self.project_command

    def add_project(self, project_path: Path) -> MutationReport:
        command = self._require_project_command("add project", project_path)
        try:
            command.add_project(self.solution_path, project_path)
        except ExternalCollaboratorError as exc:
            logger.error("%s", exc)
            self.notifier.error(str(exc))
            return MutationReport(failed_steps=[f"add {project_path.name}"], reason=str(exc))
        self.reload("add project")
        return MutationReport(changed=True, applied_steps=[f"add {project_path.name}"])

    def remove_projects(self, project_paths: Iterable[Path]) -> MutationReport:
        """Remove several projects; failures are reported per project, without rollback."""
        report = MutationReport()
        for project_path in project_paths:
            step = f"remove {Path(project_path).name}"
            command = self._require_project_command("remove project", project_path)
            try:
                command.remove_project(self.solution_path, Path(project_path))
            except ExternalCollaboratorError as exc:
                logger.error("%s", exc)
                report.failed_steps.append(step)
                continue
            report.applied_steps.append(step)
        if report.applied_steps:
            report.changed = True
            self.reload("remove projects")
        self._warn_failed(report)
        return report

    def remove_project(self, project_path: Path) -> MutationReport:
        return self.remove_projects([project_path])

    def _warn_failed(self, report: MutationReport) -> None:
        warning = report.warning_text()
        if warning is None:
            return
        logger.warning("%s", warning)
        self.notifier.warning(warning)

    def set_startup_project(self, project_path: Path) -> MutationReport:
        entity = self.document.find_project(Path(project_path))
        if entity is None:
            return self._noop("set startup project", f"{project_path} is not in the solution")
        try:
            self.user_file.set_startup_project(entity.id)
        except ExternalCollaboratorError as exc:
            return self._failed("set startup project", exc)
        self._signature = self._current_signature()
        self._emit(ChangeEvent(reason="startup_changed", document=self.document))
        return MutationReport(changed=True, applied_steps=["set startup project"], result=entity.id)

    def startup_project_path(self) -> Path | None:
        startup_id = self.user_file.get_startup_project()
        if startup_id is None or self._document is None:
            return None
        entity = self._document.entity_by_id(startup_id)
        if entity is None or entity.is_grouping:
            return None
        return Path(entity.location)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        for project in self.projects.values():
            project.dispose()
        self.projects.clear()
        self.groupings.clear()
        self._subscribers.callbacks.clear()
        logger.debug("disposed model for %s", self.solution_path)
