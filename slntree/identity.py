"""Typed node identities and their opaque string tokens.

Each tree node is addressed by one identity variant carrying only its own
fields. ``encode`` turns a variant into compact sorted JSON, compresses it
with zlib and wraps it in unpadded URL-safe base64. ``decode`` reverses that
and validates the payload against the closed variant registry.
"""

from __future__ import annotations

import base64
import binascii
import json
import secrets
import time
import zlib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import ClassVar, Union

from .errors import IdentityDecodeError


@dataclass(frozen=True)
class RootIdentity:
    kind: ClassVar[str] = "root"
    path: Path


@dataclass(frozen=True)
class ProjectIdentity:
    kind: ClassVar[str] = "project"
    path: Path


@dataclass(frozen=True)
class DirectoryIdentity:
    kind: ClassVar[str] = "directory"
    project_path: Path
    path: Path


@dataclass(frozen=True)
class FileIdentity:
    kind: ClassVar[str] = "file"
    path: Path
    project_path: Path | None = None


@dataclass(frozen=True)
class GroupingFolderIdentity:
    kind: ClassVar[str] = "groupingFolder"
    name: str
    solution_path: Path
    entity_id: str
    parent_id: str | None = None


@dataclass(frozen=True)
class GroupedItemIdentity:
    kind: ClassVar[str] = "groupedItem"
    name: str
    grouping_id: str
    path: Path


@dataclass(frozen=True)
class DependencyContainerIdentity:
    kind: ClassVar[str] = "dependencyContainer"
    project_path: Path


@dataclass(frozen=True)
class DependencyCategoryIdentity:
    kind: ClassVar[str] = "dependencyCategory"
    project_path: Path
    name: str


@dataclass(frozen=True)
class DependencyIdentity:
    kind: ClassVar[str] = "dependency"
    project_path: Path
    category: str
    name: str
    version: str | None = None


@dataclass(frozen=True)
class TransientIdentity:
    """Placeholder for a not-yet-committed node; never equal to another."""

    kind: ClassVar[str] = "transient"
    parent_path: Path
    node_kind: str
    created_at: float
    nonce: str


NodeIdentity = Union[
    RootIdentity,
    ProjectIdentity,
    DirectoryIdentity,
    FileIdentity,
    GroupingFolderIdentity,
    GroupedItemIdentity,
    DependencyContainerIdentity,
    DependencyCategoryIdentity,
    DependencyIdentity,
    TransientIdentity,
]

_REGISTRY: dict[str, type] = {
    cls.kind: cls
    for cls in (
        RootIdentity,
        ProjectIdentity,
        DirectoryIdentity,
        FileIdentity,
        GroupingFolderIdentity,
        GroupedItemIdentity,
        DependencyContainerIdentity,
        DependencyCategoryIdentity,
        DependencyIdentity,
        TransientIdentity,
    )
}

_KIND_KEY = "k"


def _is_path_field(name: str) -> bool:
    return name == "path" or name.endswith("_path")


def encode(identity: NodeIdentity) -> str:
    if type(identity) not in _REGISTRY.values():
        raise TypeError(f"not a node identity: {identity!r}")
    payload: dict[str, object] = {_KIND_KEY: identity.kind}
    for item in fields(identity):
        value = getattr(identity, item.name)
        payload[item.name] = str(value) if isinstance(value, Path) else value
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    compressed = zlib.compress(raw.encode("utf-8"), 9)
    return base64.urlsafe_b64encode(compressed).decode("ascii").rstrip("=")


def _payload(token: str) -> dict[str, object]:
    if not isinstance(token, str) or not token:
        raise IdentityDecodeError(str(token), "empty token")
    padded = token + "=" * (-len(token) % 4)
    try:
        compressed = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
        raw = zlib.decompress(compressed).decode("utf-8")
        payload = json.loads(raw)
    except (binascii.Error, UnicodeError, zlib.error, ValueError) as exc:
        raise IdentityDecodeError(token, f"undecodable: {exc}") from exc
    if not isinstance(payload, dict):
        raise IdentityDecodeError(token, "payload is not an object")
    return payload


def decode(token: str) -> NodeIdentity:
    """Decode ``token``; any malformed input raises ``IdentityDecodeError``."""
    payload = _payload(token)
    kind = payload.pop(_KIND_KEY, None)
    cls = _REGISTRY.get(kind) if isinstance(kind, str) else None
    if cls is None:
        raise IdentityDecodeError(token, f"unknown kind {kind!r}")

    known = {item.name: item for item in fields(cls)}
    extra = set(payload) - set(known)
    if extra:
        raise IdentityDecodeError(token, f"unexpected fields {sorted(extra)}")

    values: dict[str, object] = {}
    for name, item in known.items():
        optional = item.default is None
        if name not in payload:
            if optional:
                continue
            raise IdentityDecodeError(token, f"missing field {name!r}")
        value = payload[name]
        if value is None and optional:
            values[name] = None
        elif name == "created_at":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise IdentityDecodeError(token, f"field {name!r} must be a number")
            values[name] = float(value)
        elif not isinstance(value, str):
            raise IdentityDecodeError(token, f"field {name!r} must be a string")
        elif _is_path_field(name):
            values[name] = Path(value)
        else:
            values[name] = value
    return cls(**values)


def try_decode(token: str) -> tuple[NodeIdentity | None, IdentityDecodeError | None]:
    """Decode without raising; returns ``(identity, error)``."""
    try:
        return decode(token), None
    except IdentityDecodeError as exc:
        return None, exc


def new_transient(parent_path: Path, node_kind: str) -> TransientIdentity:
    return TransientIdentity(
        parent_path=Path(parent_path),
        node_kind=node_kind,
        created_at=time.time(),
        nonce=secrets.token_hex(8),
    )


def transient_token(parent_path: Path, node_kind: str) -> str:
    """Fresh placeholder token; two calls never return the same value."""
    return encode(new_transient(parent_path, node_kind))


__all__ = [
    "NodeIdentity",
    "RootIdentity",
    "ProjectIdentity",
    "DirectoryIdentity",
    "FileIdentity",
    "GroupingFolderIdentity",
    "GroupedItemIdentity",
    "DependencyContainerIdentity",
    "DependencyCategoryIdentity",
    "DependencyIdentity",
    "TransientIdentity",
    "encode",
    "decode",
    "try_decode",
    "new_transient",
    "transient_token",
]
