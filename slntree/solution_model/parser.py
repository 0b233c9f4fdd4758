"""Line-oriented parser for ``.sln`` text.

Lines are stripped and blank lines skipped. Block openers that do not match
their trailer grammar raise ``ParseError``; every other unknown line is
ignored. A block missing its terminator runs to end of input.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from ..errors import ParseError
from .types import Document, Edge, Entity, EntityKind, Section, SectionPhase

logger = logging.getLogger(__name__)

_FORMAT_VERSION_RE = re.compile(r"Format Version (\d+\.\d+)")
_TOOL_VERSION_RE = re.compile(r"^VisualStudioVersion\s*=\s*(.+)$")
_MIN_TOOL_VERSION_RE = re.compile(r"^MinimumVisualStudioVersion\s*=\s*(.+)$")
_ENTITY_RE = re.compile(r'^Project\("([^"]+)"\)\s*=\s*"([^"]*)",\s*"([^"]*)",\s*"([^"]+)"')
_PROJECT_SECTION_RE = re.compile(r"^ProjectSection\(([^)]+)\)\s*=\s*(preProject|postProject)")
_GLOBAL_SECTION_RE = re.compile(r"^GlobalSection\(([^)]+)\)\s*=\s*(preSolution|postSolution)")

NESTED_PROJECTS = "NestedProjects"


def resolve_location(base_path: Path, raw_location: str) -> Path:
    """Resolve a stored location against ``base_path`` with separators normalized."""
    relative = raw_location.replace("\\", "/")
    return Path(os.path.normpath(os.path.join(str(base_path), relative)))


def split_item(line: str) -> tuple[str, str]:
    """Split ``key = value`` on the first ``=``; a line without one is a bare key."""
    key, sep, value = line.partition("=")
    if not sep:
        return line.strip(), ""
    return key.strip(), value.strip()


class _Lines:
    """Cursor over non-blank stripped lines carrying 1-based source numbers."""

    def __init__(self, text: str) -> None:
        self.rows: list[tuple[int, str]] = []
        for number, raw in enumerate(text.splitlines(), start=1):
            stripped = raw.strip()
            if stripped:
                self.rows.append((number, stripped))
        self.index = 0

    def done(self) -> bool:
        return self.index >= len(self.rows)

    def next(self) -> tuple[int, str]:
        row = self.rows[self.index]
        self.index += 1
        return row


def _parse_items(lines: _Lines, terminator: str) -> tuple[tuple[str, str], ...]:
    items: list[tuple[str, str]] = []
    while not lines.done():
        _number, line = lines.next()
        if line == terminator:
            break
        items.append(split_item(line))
    return tuple(items)


def _parse_entity(lines: _Lines, number: int, line: str, base_path: Path) -> Entity:
    match = _ENTITY_RE.match(line)
    if match is None:
        raise ParseError("malformed project declaration", number, line)
    type_id, name, raw_location, entity_id = match.groups()

    sections: list[Section] = []
    while not lines.done():
        section_number, section_line = lines.next()
        if section_line == "EndProject":
            break
        if section_line.startswith("ProjectSection("):
            section_match = _PROJECT_SECTION_RE.match(section_line)
            if section_match is None:
                raise ParseError("malformed project section", section_number, section_line)
            section_name, phase = section_match.groups()
            items = _parse_items(lines, "EndProjectSection")
            sections.append(Section(section_name.strip(), SectionPhase.parse(phase), items))

    location: Path | str
    if EntityKind.from_type_id(type_id) is EntityKind.SOLUTION_FOLDER:
        location = name
    else:
        location = resolve_location(base_path, raw_location)
    return Entity(type_id=type_id, name=name, location=location, id=entity_id, sections=tuple(sections))


def _parse_global(lines: _Lines) -> list[Section]:
    sections: list[Section] = []
    while not lines.done():
        number, line = lines.next()
        if line == "EndGlobal":
            break
        if line.startswith("GlobalSection("):
            match = _GLOBAL_SECTION_RE.match(line)
            if match is None:
                raise ParseError("malformed global section", number, line)
            name, phase = match.groups()
            items = _parse_items(lines, "EndGlobalSection")
            sections.append(Section(name.strip(), SectionPhase.parse(phase), items))
    return sections


def parse(text: str, base_path: Path | str) -> Document:
    """Parse solution ``text``; relative project locations resolve against ``base_path``."""
    base = Path(base_path)
    lines = _Lines(text)

    format_version = ""
    tool_version: str | None = None
    minimum_tool_version: str | None = None
    comments: list[str] = []
    entities: list[Entity] = []
    global_sections: list[Section] = []

    while not lines.done():
        number, line = lines.next()
        if line.startswith("Project("):
            entities.append(_parse_entity(lines, number, line, base))
            continue
        if line == "Global":
            global_sections.extend(_parse_global(lines))
            continue
        if line.startswith("#"):
            comments.append(line)
            continue
        version_match = _FORMAT_VERSION_RE.search(line)
        if version_match is not None and not format_version:
            format_version = version_match.group(1)
            continue
        tool_match = _TOOL_VERSION_RE.match(line)
        if tool_match is not None:
            tool_version = tool_match.group(1).strip()
            continue
        min_match = _MIN_TOOL_VERSION_RE.match(line)
        if min_match is not None:
            minimum_tool_version = min_match.group(1).strip()
            continue
        logger.debug("ignoring unrecognized line %d: %r", number, line)

    edges: list[Edge] = []
    for section in global_sections:
        if section.name != NESTED_PROJECTS:
            continue
        for child_id, parent_id in section.items:
            if child_id and parent_id:
                edges.append(Edge(child_id=child_id, parent_id=parent_id))

    logger.debug("parsed %d entities and %d edges", len(entities), len(edges))
    return Document(
        format_version=format_version,
        tool_version=tool_version,
        minimum_tool_version=minimum_tool_version,
        header_comments=tuple(comments),
        entities=tuple(entities),
        global_sections=tuple(global_sections),
        hierarchy_edges=tuple(edges),
        base_path=base,
    )


def parse_file(path: Path) -> Document:
    """Read and parse a solution file; ``OSError`` propagates to the caller."""
    text = path.read_text(encoding="utf-8-sig")
    return parse(text, path.parent)
