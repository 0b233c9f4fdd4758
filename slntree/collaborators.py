"""External collaborator interfaces and default implementations.

The core only issues calls through these protocols: directory listing,
dependency listing, project add/remove commands, package operations, file
renames, and user notifications. Tests substitute in-memory fakes.
"""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .config import DEFAULT_SKIP_DIRECTORIES
from .errors import ExternalCollaboratorError

logger = logging.getLogger(__name__)

DEPENDENCY_CATEGORIES = ("Packages", "Projects", "Frameworks", "Assemblies")
_REFERENCE_CATEGORIES = {
    "PackageReference": "Packages",
    "ProjectReference": "Projects",
    "FrameworkReference": "Frameworks",
    "Reference": "Assemblies",
}


@dataclass(frozen=True)
class DirectoryItem:
    name: str
    path: Path
    is_dir: bool


@dataclass(frozen=True)
class DependencyItem:
    category: str
    name: str
    version: str | None = None
    path: Path | None = None


class DirectoryLister(Protocol):
    def list_children(self, directory: Path) -> list[DirectoryItem]: ...


class DependencyLister(Protocol):
    def list_dependencies(self, project_path: Path) -> list[DependencyItem]: ...


class ExternalProjectCommand(Protocol):
    def add_project(self, solution_path: Path, project_path: Path) -> None: ...

    def remove_project(self, solution_path: Path, project_path: Path) -> None: ...


class PackageOperations(Protocol):
    def remove_dependency(self, project_path: Path, dependency: DependencyItem) -> None: ...


class RenameProvider(Protocol):
    def rename(self, old_path: Path, new_path: Path) -> None: ...


class Notifier(Protocol):
    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Route user-visible notifications into the ``slntree`` logger."""

    def __init__(self, name: str = "slntree.notify") -> None:
        self._logger = logging.getLogger(name)

    def info(self, message: str) -> None:
        self._logger.info("%s", message)

    def warning(self, message: str) -> None:
        self._logger.warning("%s", message)

    def error(self, message: str) -> None:
        self._logger.error("%s", message)


class FilesystemDirectoryLister:
    """List directory children, directories first, case-insensitive by name."""

    def __init__(
        self,
        skip_directories: frozenset[str] = frozenset(DEFAULT_SKIP_DIRECTORIES),
        show_hidden: bool = False,
    ) -> None:
        self.skip_directories = skip_directories
        self.show_hidden = show_hidden

    def list_children(self, directory: Path) -> list[DirectoryItem]:
        children: list[DirectoryItem] = []
        try:
            with os.scandir(directory) as entries:
                for child in entries:
                    name = child.name
                    if not self.show_hidden and name.startswith("."):
                        continue
                    try:
                        is_dir = child.is_dir(follow_symlinks=False)
                    except OSError:
                        is_dir = False
                    if is_dir and name in self.skip_directories:
                        continue
                    children.append(DirectoryItem(name=name, path=Path(child.path), is_dir=is_dir))
        except OSError as exc:
            raise ExternalCollaboratorError("list directory", str(directory), exc) from exc
        children.sort(key=lambda item: (not item.is_dir, item.name.casefold(), item.name))
        return children


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


class ProjectFileDependencyLister:
    """Read declared references from an MSBuild project file."""

    def list_dependencies(self, project_path: Path) -> list[DependencyItem]:
        try:
            root = ET.parse(project_path).getroot()
        except (OSError, ET.ParseError) as exc:
            raise ExternalCollaboratorError("read dependencies", str(project_path), exc) from exc

        found: list[DependencyItem] = []
        for element in root.iter():
            category = _REFERENCE_CATEGORIES.get(_local_name(element.tag))
            if category is None:
                continue
            include = element.get("Include")
            if not include:
                continue
            version = element.get("Version")
            if version is None:
                for child in element:
                    if _local_name(child.tag) == "Version" and child.text:
                        version = child.text.strip()
            path: Path | None = None
            name = include
            if category == "Projects":
                path = Path(os.path.normpath(project_path.parent / include.replace("\\", "/")))
                name = path.stem
            elif category == "Assemblies":
                name = include.split(",", 1)[0].strip()
            found.append(DependencyItem(category=category, name=name, version=version, path=path))

        order = {category: index for index, category in enumerate(DEPENDENCY_CATEGORIES)}
        found.sort(key=lambda item: (order[item.category], item.name.casefold()))
        return found


class FilesystemRenameProvider:
    def rename(self, old_path: Path, new_path: Path) -> None:
        if new_path.exists():
            raise ExternalCollaboratorError("rename", str(old_path), FileExistsError(str(new_path)))
        try:
            old_path.rename(new_path)
        except OSError as exc:
            raise ExternalCollaboratorError("rename", str(old_path), exc) from exc
