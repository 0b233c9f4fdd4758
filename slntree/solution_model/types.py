"""Parsed solution document datatypes.

``Document`` is immutable and rebuilt on every detected change. Entities are
kept in file order and addressed by their brace-delimited GUID.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class EntityKind(Enum):
    """Closed registry of entity type GUIDs with a generic fallback."""

    SOLUTION_FOLDER = "{2150E333-8FDC-42A3-9474-1A3956D46DE8}"
    CSHARP = "{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}"
    CSHARP_SDK = "{9A19103F-16F7-4668-BE54-9A1E7A4F7556}"
    VB = "{F184B08F-C81C-45F6-A57F-5ABD9991F28F}"
    FSHARP = "{F2A71F9B-5D33-465A-A702-920D77279786}"
    CPP = "{8BC9CEB8-8B4A-11D0-8D11-00A0C91BC942}"
    WEB = "{E24C65DC-7377-472B-9ABA-BC803B73C61A}"
    DATABASE = "{00D1A9C2-B5F0-4AF3-8072-F6C62B433612}"
    GENERIC = ""

    @classmethod
    def from_type_id(cls, type_id: str) -> EntityKind:
        """Resolve a type GUID case-insensitively; unknown values are ``GENERIC``."""
        wanted = type_id.strip().upper()
        for kind in cls:
            if kind is not cls.GENERIC and kind.value == wanted:
                return kind
        return cls.GENERIC


class SectionPhase(Enum):
    PRE = "pre"
    POST = "post"

    def render(self, scope: str) -> str:
        """Return the on-disk token, e.g. ``preProject`` or ``postSolution``."""
        return f"{self.value}{scope}"

    @classmethod
    def parse(cls, token: str) -> SectionPhase:
        return cls.PRE if token.startswith("pre") else cls.POST


@dataclass(frozen=True)
class Section:
    """Named key/value section; duplicate keys are kept in order."""

    name: str
    phase: SectionPhase
    items: tuple[tuple[str, str], ...] = ()

    def get(self, key: str, default: str | None = None) -> str | None:
        for item_key, value in self.items:
            if item_key == key:
                return value
        return default

    def keys(self) -> list[str]:
        return [key for key, _value in self.items]


@dataclass(frozen=True)
class Edge:
    """Declared ``child -> parent`` relationship from ``NestedProjects``."""

    child_id: str
    parent_id: str


@dataclass(frozen=True)
class Entity:
    """One ``Project(...)`` block."""

    type_id: str
    name: str
    location: Path | str
    id: str
    sections: tuple[Section, ...] = ()

    @property
    def kind(self) -> EntityKind:
        return EntityKind.from_type_id(self.type_id)

    @property
    def is_grouping(self) -> bool:
        return self.kind is EntityKind.SOLUTION_FOLDER

    def section(self, name: str) -> Section | None:
        for section in self.sections:
            if section.name == name:
                return section
        return None

    def grouped_items(self) -> list[str]:
        """Relative item paths from the ``SolutionItems`` section, in order."""
        section = self.section("SolutionItems")
        if section is None:
            return []
        return [key for key in section.keys() if key]


@dataclass(frozen=True)
class Document:
    format_version: str = ""
    tool_version: str | None = None
    minimum_tool_version: str | None = None
    header_comments: tuple[str, ...] = ()
    entities: tuple[Entity, ...] = ()
    global_sections: tuple[Section, ...] = ()
    hierarchy_edges: tuple[Edge, ...] = ()
    base_path: Path = field(default_factory=Path)

    def entity_by_id(self, entity_id: str) -> Entity | None:
        wanted = entity_id.upper()
        for entity in self.entities:
            if entity.id.upper() == wanted:
                return entity
        return None

    def groupings(self) -> list[Entity]:
        return [entity for entity in self.entities if entity.is_grouping]

    def projects(self) -> list[Entity]:
        return [entity for entity in self.entities if not entity.is_grouping]

    def find_grouping(self, name: str) -> Entity | None:
        for entity in self.entities:
            if entity.is_grouping and entity.name == name:
                return entity
        return None

    def find_project(self, path: Path) -> Entity | None:
        wanted = Path(path)
        for entity in self.projects():
            if isinstance(entity.location, Path) and entity.location == wanted:
                return entity
        return None

    def global_section(self, name: str) -> Section | None:
        for section in self.global_sections:
            if section.name == name:
                return section
        return None
