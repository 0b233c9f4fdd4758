"""Nest dependent files under the file they belong to.

A directory listing such as ``Index.cshtml``, ``Index.cshtml.cs`` and
``Form1.Designer.cs`` is folded so code-behind, designer, suffix and
generated files hang under their parent file. Directories never nest.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..collaborators import DirectoryItem

_CODE_BEHIND_RE = re.compile(
    r"\.(?:aspx\.(?:cs|vb)|cshtml\.cs|vbhtml\.vb|razor\.cs|xaml\.(?:cs|vb))$",
    re.IGNORECASE,
)
_DESIGNER_BEHIND_RE = re.compile(r"\.(?:resx|settings)(\.designer\.(?:cs|vb))$", re.IGNORECASE)
_SUFFIX_RE = re.compile(
    r"\.(?:Dtos?|Models?|Entity|Entities|Request|Response|Command|Query|Validator|Validation"
    r"|Handlers?|Services?|Repository|Repositories|Extensions?|Helpers?|Utils?|Constants?"
    r"|Config|Configuration|Settings?|Tests?)$",
    re.IGNORECASE,
)


@dataclass
class NestedFile:
    item: DirectoryItem
    children: list[NestedFile] = field(default_factory=list)


def _split_ext(name: str) -> tuple[str, str]:
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return name, ""
    return stem, "." + ext


def parent_name_for(name: str, names: set[str]) -> str | None:
    """Return the sibling file ``name`` nests under, or ``None``."""
    designer = _DESIGNER_BEHIND_RE.search(name)
    if designer is not None:
        candidate = name[: designer.start(1)]
        if candidate in names:
            return candidate
    if _CODE_BEHIND_RE.search(name):
        candidate = _split_ext(name)[0]
        if candidate in names:
            return candidate

    stem, ext = _split_ext(name)
    suffix = _SUFFIX_RE.search(stem)
    if suffix is not None:
        candidate = stem[: suffix.start()] + ext
        if candidate != name and candidate in names:
            return candidate

    if ".Designer." in name:
        candidate = name.replace(".Designer.", ".", 1)
        if candidate in names:
            return candidate

    if ext.lower() == ".cs":
        for other in sorted(names):
            other_stem, other_ext = _split_ext(other)
            if other != name and other_stem == stem and other_ext.lower() != ".cs":
                return other
    return None


def _creates_cycle(child: str, parent: str, parents: dict[str, str]) -> bool:
    current: str | None = parent
    while current is not None:
        if current == child:
            return True
        current = parents.get(current)
    return False


def nest_files(items: list[DirectoryItem]) -> list[NestedFile]:
    """Fold files under their parents; top-level order follows ``items``.

    Nested children are sorted case-insensitively by name.
    """
    files = [item for item in items if not item.is_dir]
    names = {item.name for item in files}
    parents: dict[str, str] = {}
    for item in files:
        parent = parent_name_for(item.name, names)
        if parent is None or parent == item.name or _creates_cycle(item.name, parent, parents):
            continue
        parents[item.name] = parent

    nodes = {item.name: NestedFile(item) for item in files}
    for child, parent in parents.items():
        nodes[parent].children.append(nodes[child])
    for node in nodes.values():
        node.children.sort(key=lambda nested: (nested.item.name.casefold(), nested.item.name))

    result: list[NestedFile] = []
    for item in items:
        if item.is_dir:
            result.append(NestedFile(item))
        elif item.name not in parents:
            result.append(nodes[item.name])
    return result


__all__ = ["NestedFile", "nest_files", "parent_name_for"]
