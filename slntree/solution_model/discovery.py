"""Locate solution files in a workspace root and create empty ones."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..errors import ExternalCollaboratorError
from .types import Document, Section, SectionPhase
from .writer import serialize

logger = logging.getLogger(__name__)

SOLUTION_SUFFIX = ".sln"
DEFAULT_FORMAT_VERSION = "12.00"
DEFAULT_TOOL_VERSION = "17.0.31903.59"
DEFAULT_MINIMUM_TOOL_VERSION = "10.0.40219.1"


class DiscoveryKind(Enum):
    NONE = "none"
    SINGLE = "single"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class DiscoveryResult:
    kind: DiscoveryKind
    paths: tuple[Path, ...] = ()

    @property
    def solution_path(self) -> Path | None:
        return self.paths[0] if self.kind is DiscoveryKind.SINGLE else None


def discover_solutions(root: Path) -> DiscoveryResult:
    """List ``*.sln`` files directly under ``root`` in case-insensitive name order."""
    try:
        paths = sorted(
            (path for path in root.iterdir() if path.suffix == SOLUTION_SUFFIX and path.is_file()),
            key=lambda path: (path.name.casefold(), path.name),
        )
    except OSError as exc:
        logger.error("error discovering solution files under %s: %s", root, exc)
        return DiscoveryResult(DiscoveryKind.NONE)
    if not paths:
        return DiscoveryResult(DiscoveryKind.NONE)
    if len(paths) == 1:
        return DiscoveryResult(DiscoveryKind.SINGLE, (paths[0],))
    return DiscoveryResult(DiscoveryKind.MULTIPLE, tuple(paths))


def empty_solution_document(base_path: Path) -> Document:
    solution_guid = "{" + str(uuid.uuid4()).upper() + "}"
    return Document(
        format_version=DEFAULT_FORMAT_VERSION,
        tool_version=DEFAULT_TOOL_VERSION,
        minimum_tool_version=DEFAULT_MINIMUM_TOOL_VERSION,
        header_comments=("# Visual Studio Version 17",),
        global_sections=(
            Section("SolutionProperties", SectionPhase.PRE, (("HideSolutionNode", "FALSE"),)),
            Section("ExtensibilityGlobals", SectionPhase.POST, (("SolutionGuid", solution_guid),)),
        ),
        base_path=base_path,
    )


def create_empty_solution(path: Path) -> Path:
    """Write a minimal valid solution at ``path``; an existing file is left alone."""
    if path.suffix != SOLUTION_SUFFIX:
        path = path.with_name(path.name + SOLUTION_SUFFIX)
    if path.exists():
        raise ExternalCollaboratorError("create solution", str(path), FileExistsError(str(path)))
    text = serialize(empty_solution_document(path.parent))
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ExternalCollaboratorError("create solution", str(path), exc) from exc
    logger.info("created empty solution %s", path)
    return path
