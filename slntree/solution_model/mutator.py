"""Surgical, order-preserving edits to solution text.

Every function takes the current text and returns new text. Lines outside the
touched region are kept byte-identical and the file's newline style is
preserved. A missing target is a no-op: the input text is returned unchanged.
"""

from __future__ import annotations

import logging
import os
import re
import uuid
from collections import deque
from dataclasses import dataclass
from pathlib import Path

from .parser import NESTED_PROJECTS, parse
from .types import EntityKind

logger = logging.getLogger(__name__)

_ENTITY_RE = re.compile(r'^Project\("([^"]+)"\)\s*=\s*"([^"]*)",\s*"([^"]*)",\s*"([^"]+)"')
_PROJECT_SECTION_RE = re.compile(r"^ProjectSection\(([^)]+)\)\s*=\s*(preProject|postProject)")
_GLOBAL_SECTION_RE = re.compile(r"^GlobalSection\(([^)]+)\)\s*=\s*(preSolution|postSolution)")

SOLUTION_ITEMS = "SolutionItems"
PROJECT_CONFIGURATION_PLATFORMS = "ProjectConfigurationPlatforms"


@dataclass(frozen=True)
class _Block:
    start: int
    end: int
    type_id: str
    name: str
    location: str
    entity_id: str

    @property
    def is_grouping(self) -> bool:
        return EntityKind.from_type_id(self.type_id) is EntityKind.SOLUTION_FOLDER


def new_entity_id() -> str:
    """Return a fresh brace-delimited uppercase GUID."""
    return "{" + str(uuid.uuid4()).upper() + "}"


def normalize_item_path(path: str) -> str:
    return path.strip().replace("\\", "/")


def relative_item_path(base_path: Path, path: Path) -> str:
    """Return ``path`` relative to ``base_path`` with forward slashes."""
    return os.path.relpath(str(path), str(base_path)).replace("\\", "/")


def _split(text: str) -> tuple[list[str], str]:
    newline = "\r\n" if "\r\n" in text else "\n"
    return text.split(newline), newline


def _join(lines: list[str], newline: str) -> str:
    return newline.join(lines)


def _content_end(lines: list[str]) -> int:
    """Index just past the last non-empty line, keeping a trailing newline last."""
    end = len(lines)
    while end > 0 and lines[end - 1] == "":
        end -= 1
    return end


def _same_id(left: str, right: str) -> bool:
    return left.strip().upper() == right.strip().upper()


def _entity_blocks(lines: list[str]) -> list[_Block]:
    """Locate every entity block; an unterminated block stops at the next opener."""
    blocks: list[_Block] = []
    index = 0
    while index < len(lines):
        stripped = lines[index].strip()
        match = _ENTITY_RE.match(stripped) if stripped.startswith("Project(") else None
        if match is None:
            index += 1
            continue
        end = index
        cursor = index + 1
        while cursor < len(lines):
            current = lines[cursor].strip()
            if current == "EndProject":
                end = cursor
                break
            if current.startswith("Project(") or current == "Global":
                break
            end = cursor
            cursor += 1
        type_id, name, location, entity_id = match.groups()
        blocks.append(_Block(index, end, type_id, name, location, entity_id))
        index = end + 1
    return blocks


def _find_block(lines: list[str], entity_id: str, grouping_only: bool = False) -> _Block | None:
    for block in _entity_blocks(lines):
        if not _same_id(block.entity_id, entity_id):
            continue
        if grouping_only and not block.is_grouping:
            return None
        return block
    return None


def _find_global_section(lines: list[str], name: str) -> tuple[int, int] | None:
    """Return ``(start, end)`` line indexes of a global section.

    ``end`` is the ``EndGlobalSection`` line, or the first line past the rows
    when the section is unterminated.
    """
    start = -1
    for index, raw in enumerate(lines):
        stripped = raw.strip()
        if start < 0:
            match = _GLOBAL_SECTION_RE.match(stripped)
            if match is not None and match.group(1).strip() == name:
                start = index
            continue
        if stripped == "EndGlobalSection":
            return start, index
        if stripped == "EndGlobal":
            return start, index
    if start >= 0:
        return start, _content_end(lines)
    return None


def _find_line(lines: list[str], wanted: str) -> int:
    for index, raw in enumerate(lines):
        if raw.strip() == wanted:
            return index
    return -1


def add_hierarchy_edge(text: str, child_id: str, parent_id: str) -> str:
    """Append ``child = parent`` to ``NestedProjects``, creating the section when absent."""
    lines, newline = _split(text)
    row = f"\t\t{child_id} = {parent_id}"
    span = _find_global_section(lines, NESTED_PROJECTS)
    if span is not None:
        _start, end = span
        lines.insert(end, row)
        return _join(lines, newline)

    section = [f"\tGlobalSection({NESTED_PROJECTS}) = preSolution", row, "\tEndGlobalSection"]
    end_global = _find_line(lines, "EndGlobal")
    if end_global >= 0:
        lines[end_global:end_global] = section
    else:
        insert_at = _content_end(lines)
        lines[insert_at:insert_at] = ["Global", *section, "EndGlobal"]
    return _join(lines, newline)


def _remove_global_rows(lines: list[str], section_name: str, should_remove, drop_if_empty: bool) -> list[str]:
    span = _find_global_section(lines, section_name)
    if span is None:
        return lines
    start, end = span
    kept_rows: list[str] = []
    removed = 0
    for raw in lines[start + 1:end]:
        key, _sep, value = raw.strip().partition("=")
        if should_remove(key.strip(), value.strip()):
            removed += 1
            continue
        kept_rows.append(raw)
    if removed == 0:
        return lines
    if drop_if_empty and not any(row.strip() for row in kept_rows):
        terminator_end = end + 1 if end < len(lines) and lines[end].strip() == "EndGlobalSection" else end
        return lines[:start] + lines[terminator_end:]
    return lines[: start + 1] + kept_rows + lines[end:]


def remove_hierarchy_edges(text: str, entity_ids: set[str]) -> str:
    """Drop ``NestedProjects`` rows whose child or parent is in ``entity_ids``."""
    wanted = {entity_id.upper() for entity_id in entity_ids}
    lines, newline = _split(text)
    updated = _remove_global_rows(
        lines,
        NESTED_PROJECTS,
        lambda key, value: key.upper() in wanted or value.upper() in wanted,
        drop_if_empty=True,
    )
    if updated is lines:
        return text
    return _join(updated, newline)


def _remove_configuration_rows(text: str, entity_ids: set[str]) -> str:
    wanted = {entity_id.upper() for entity_id in entity_ids}
    lines, newline = _split(text)
    updated = _remove_global_rows(
        lines,
        PROJECT_CONFIGURATION_PLATFORMS,
        lambda key, _value: key.split(".", 1)[0].upper() in wanted,
        drop_if_empty=False,
    )
    if updated is lines:
        return text
    return _join(updated, newline)


def insert_grouping(
    text: str,
    name: str,
    *,
    parent_id: str | None = None,
    entity_id: str | None = None,
) -> tuple[str, str | None]:
    """Insert a grouping folder before the global block.

    Returns ``(new_text, entity_id)``. When ``parent_id`` does not name an
    existing grouping the text is returned unchanged with ``None``.
    """
    if '"' in name or not name.strip():
        raise ValueError(f"invalid grouping name: {name!r}")
    lines, newline = _split(text)
    if parent_id is not None and _find_block(lines, parent_id, grouping_only=True) is None:
        logger.warning("parent grouping %s not found; nothing inserted", parent_id)
        return text, None

    new_id = entity_id or new_entity_id()
    folder_type = EntityKind.SOLUTION_FOLDER.value
    block = [f'Project("{folder_type}") = "{name}", "{name}", "{new_id}"', "EndProject"]
    insert_at = _find_line(lines, "Global")
    if insert_at < 0:
        insert_at = _content_end(lines)
    lines[insert_at:insert_at] = block
    updated = _join(lines, newline)
    if parent_id is not None:
        updated = add_hierarchy_edge(updated, new_id, parent_id)
    return updated, new_id


def _collect_descendants(text: str, root_id: str) -> list[str]:
    document = parse(text, Path("."))
    children: dict[str, list[str]] = {}
    for edge in document.hierarchy_edges:
        children.setdefault(edge.parent_id.upper(), []).append(edge.child_id)
    found: list[str] = []
    visited = {root_id.upper()}
    queue = deque([root_id])
    while queue:
        current = queue.popleft()
        for child_id in children.get(current.upper(), []):
            key = child_id.upper()
            if key in visited:
                continue
            visited.add(key)
            found.append(child_id)
            queue.append(child_id)
    return found


def _drop_block(lines: list[str], entity_id: str) -> list[str]:
    block = _find_block(lines, entity_id)
    if block is None:
        return lines
    return lines[: block.start] + lines[block.end + 1:]


def remove_entity(text: str, entity_id: str) -> str:
    """Remove an entity, every descendant, and all global rows naming them."""
    lines, newline = _split(text)
    target = _find_block(lines, entity_id)
    if target is None:
        return text

    descendants = _collect_descendants(text, target.entity_id) if target.is_grouping else []
    for descendant_id in descendants:
        lines = _drop_block(lines, descendant_id)
    lines = _drop_block(lines, target.entity_id)

    removed = {target.entity_id, *descendants}
    updated = remove_hierarchy_edges(_join(lines, newline), removed)
    updated = _remove_configuration_rows(updated, removed)
    logger.debug("removed %s with %d descendants", target.entity_id, len(descendants))
    return updated


def remove_grouping(text: str, entity_id: str) -> str:
    """Cascade-delete a grouping folder; non-grouping ids are a no-op."""
    lines, _newline = _split(text)
    if _find_block(lines, entity_id, grouping_only=True) is None:
        return text
    return remove_entity(text, entity_id)


def rename_grouping(text: str, entity_id: str, new_name: str, current_name: str | None = None) -> str:
    """Rewrite only the name-bearing quoted segments on a grouping's open line."""
    if '"' in new_name or not new_name.strip():
        raise ValueError(f"invalid grouping name: {new_name!r}")
    lines, newline = _split(text)
    block = _find_block(lines, entity_id, grouping_only=True)
    if block is None:
        return text
    if current_name is not None and block.name != current_name:
        return text
    if block.name == new_name:
        return text

    raw = lines[block.start]
    offset = len(raw) - len(raw.lstrip())
    match = _ENTITY_RE.match(raw[offset:])
    if match is None:
        return text
    spans = [match.span(2)]
    if match.group(3) == match.group(2):
        spans.append(match.span(3))
    for span_start, span_end in reversed(spans):
        raw = raw[: offset + span_start] + new_name + raw[offset + span_end:]
    lines[block.start] = raw
    return _join(lines, newline)


def _items_section(lines: list[str], block: _Block) -> tuple[int, int] | None:
    """Return ``(start, end)`` of the items section with ``end`` exclusive of every row.

    ``end`` is the ``EndProjectSection`` line, or for an unterminated section the
    ``EndProject`` line, or the line just past the block's last non-blank row.
    """
    start = -1
    for index in range(block.start + 1, block.end + 1):
        stripped = lines[index].strip()
        if start < 0:
            match = _PROJECT_SECTION_RE.match(stripped)
            if match is not None and match.group(1).strip() == SOLUTION_ITEMS:
                start = index
            continue
        if stripped == "EndProjectSection":
            return start, index
    if start >= 0:
        if lines[block.end].strip() == "EndProject":
            return start, block.end
        end = block.end + 1
        while end - 1 > start and not lines[end - 1].strip():
            end -= 1
        return start, end
    return None


def _item_row_indexes(lines: list[str], section: tuple[int, int], wanted: str) -> list[int]:
    start, end = section
    found: list[int] = []
    for index in range(start + 1, end):
        key, _sep, _value = lines[index].strip().partition("=")
        if normalize_item_path(key) == wanted:
            found.append(index)
    return found


def add_grouped_item(text: str, grouping_id: str, relative_path: str) -> str:
    """Add ``relative_path`` to a grouping's ``SolutionItems``; duplicates are a no-op."""
    item = normalize_item_path(relative_path)
    lines, newline = _split(text)
    block = _find_block(lines, grouping_id, grouping_only=True)
    if block is None:
        return text

    row = f"\t\t{item} = {item}"
    section = _items_section(lines, block)
    if section is not None:
        if _item_row_indexes(lines, section, item):
            return text
        lines.insert(section[1], row)
        return _join(lines, newline)

    new_section = [f"\tProjectSection({SOLUTION_ITEMS}) = preProject", row, "\tEndProjectSection"]
    if lines[block.end].strip() == "EndProject":
        insert_at = block.end
    else:
        insert_at = block.end + 1
    lines[insert_at:insert_at] = new_section
    return _join(lines, newline)


def remove_grouped_item(text: str, relative_path: str, grouping_id: str | None = None) -> str:
    """Remove one item row; the section goes away with its last item."""
    item = normalize_item_path(relative_path)
    lines, newline = _split(text)
    for block in _entity_blocks(lines):
        if not block.is_grouping:
            continue
        if grouping_id is not None and not _same_id(block.entity_id, grouping_id):
            continue
        section = _items_section(lines, block)
        if section is None:
            continue
        rows = _item_row_indexes(lines, section, item)
        if not rows:
            continue
        start, end = section
        del lines[rows[0]]
        end -= 1
        remaining = [index for index in range(start + 1, end) if lines[index].strip()]
        if not remaining:
            terminated = end < len(lines) and lines[end].strip() == "EndProjectSection"
            del lines[start : end + 1 if terminated else end]
        return _join(lines, newline)
    return text


__all__ = [
    "new_entity_id",
    "normalize_item_path",
    "relative_item_path",
    "add_hierarchy_edge",
    "remove_hierarchy_edges",
    "insert_grouping",
    "remove_entity",
    "remove_grouping",
    "rename_grouping",
    "add_grouped_item",
    "remove_grouped_item",
]
