"""Solution file parsing, surgical edits, hierarchy, and the live model.

Defines the immutable ``Document`` produced by ``parse`` and the mutator
functions that edit solution text in place. ``SolutionModel`` ties them to the
filesystem and emits change events.
"""

from __future__ import annotations

from .discovery import DiscoveryKind, DiscoveryResult, create_empty_solution, discover_solutions
from .hierarchy import ChangeKind, EntityChange, Hierarchy, build_hierarchy, diff_documents
from .model import ChangeEvent, GroupingModel, ProjectModel, SolutionModel, Subscription
from .parser import parse, parse_file
from .types import Document, Edge, Entity, EntityKind, Section, SectionPhase
from .user_file import SolutionUserFile
from .writer import serialize

__all__ = [
    "Document",
    "Edge",
    "Entity",
    "EntityKind",
    "Section",
    "SectionPhase",
    "parse",
    "parse_file",
    "serialize",
    "Hierarchy",
    "build_hierarchy",
    "ChangeKind",
    "EntityChange",
    "diff_documents",
    "SolutionUserFile",
    "DiscoveryKind",
    "DiscoveryResult",
    "discover_solutions",
    "create_empty_solution",
    "ChangeEvent",
    "GroupingModel",
    "ProjectModel",
    "SolutionModel",
    "Subscription",
]
