"""Serialize a ``Document`` back into solution text.

Used for new files and round-trip checks. Surgical edits to existing files go
through ``mutator`` instead so that untouched bytes survive.
"""

from __future__ import annotations

import os
from pathlib import Path

from .types import Document, Entity, Section

HEADER_PREFIX = "Microsoft Visual Studio Solution File, Format Version"


def relative_location(base_path: Path, location: Path) -> str:
    """Return ``location`` relative to ``base_path`` with forward slashes."""
    try:
        relative = os.path.relpath(str(location), str(base_path))
    except ValueError:
        relative = str(location)
    return relative.replace("\\", "/")


def _section_lines(section: Section, keyword: str, scope: str, indent: str) -> list[str]:
    lines = [f"{indent}{keyword}({section.name}) = {section.phase.render(scope)}"]
    for key, value in section.items:
        lines.append(f"{indent}\t{key} = {value}")
    lines.append(f"{indent}End{keyword}")
    return lines


def entity_lines(entity: Entity, base_path: Path) -> list[str]:
    """Render one entity block including its project sections."""
    if entity.is_grouping or not isinstance(entity.location, Path):
        location = str(entity.location)
    else:
        location = relative_location(base_path, entity.location)
    lines = [f'Project("{entity.type_id}") = "{entity.name}", "{location}", "{entity.id}"']
    for section in entity.sections:
        lines.extend(_section_lines(section, "ProjectSection", "Project", "\t"))
    lines.append("EndProject")
    return lines


def serialize(document: Document, newline: str = "\n") -> str:
    """Render ``document`` in canonical tab-indented form."""
    lines: list[str] = []
    if document.format_version:
        lines.append(f"{HEADER_PREFIX} {document.format_version}")
    lines.extend(document.header_comments)
    if document.tool_version is not None:
        lines.append(f"VisualStudioVersion = {document.tool_version}")
    if document.minimum_tool_version is not None:
        lines.append(f"MinimumVisualStudioVersion = {document.minimum_tool_version}")
    for entity in document.entities:
        lines.extend(entity_lines(entity, document.base_path))
    lines.append("Global")
    for section in document.global_sections:
        lines.extend(_section_lines(section, "GlobalSection", "Solution", "\t"))
    lines.append("EndGlobal")
    return newline.join(lines) + newline
