"""Companion ``<solution>.user`` file holding per-user state.

Reads tolerate a missing or unreadable file and return ``None``. The first
write creates a minimal skeleton; write failures raise
``ExternalCollaboratorError``.
"""

from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path

from ..errors import ExternalCollaboratorError

logger = logging.getLogger(__name__)

_STARTUP_RE = re.compile(r"StartupProject\s*=\s*\{([^}]+)\}")
_ACTIVE_FRAMEWORK_RE = re.compile(r"ActiveFramework\s*=\s*([^\r\n]+)")
_ACTIVE_FRAMEWORK_LINE_RE = re.compile(r"[ \t]*ActiveFramework\s*=\s*[^\r\n]+(\r?\n)?")
_STARTUP_SECTION_RE = re.compile(r"[ \t]*GlobalSection\(StartupProject\)\s*=\s*preSolution.*?EndGlobalSection[ \t]*(\r?\n)?", re.DOTALL)
_EXTRA_BLANKS_RE = re.compile(r"\n\n\n+")


def user_file_path(solution_path: Path) -> Path:
    return solution_path.with_name(solution_path.name + ".user")


def _braced(guid: str) -> str:
    guid = guid.strip()
    return guid if guid.startswith("{") else "{" + guid + "}"


def _startup_section(guid: str) -> str:
    return f"GlobalSection(StartupProject) = preSolution\n\tStartupProject = {guid}\nEndGlobalSection\n"


def _new_user_file(guid: str) -> str:
    return (
        "Microsoft Visual Studio Solution File, Format Version 12.00\n"
        "# Visual Studio Version 17\n"
        "GlobalSection(SolutionProperties) = preSolution\n"
        "\tHideSolutionNode = FALSE\n"
        "EndGlobalSection\n"
        "GlobalSection(ExtensibilityGlobals) = postSolution\n"
        f"\tSolutionGuid = {{{str(uuid.uuid4()).upper()}}}\n"
        "EndGlobalSection\n" + _startup_section(guid)
    )


class SolutionUserFile:
    """Read/write access to one solution's ``.user`` companion."""

    def __init__(self, solution_path: Path) -> None:
        self.path = user_file_path(Path(solution_path))

    def exists(self) -> bool:
        return self.path.is_file()

    def _read(self) -> str | None:
        if not self.path.is_file():
            return None
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("could not read %s: %s", self.path, exc)
            return None

    def _write(self, operation: str, content: str) -> None:
        try:
            self.path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ExternalCollaboratorError(operation, str(self.path), exc) from exc

    def get_startup_project(self) -> str | None:
        content = self._read()
        if content is None:
            return None
        match = _STARTUP_RE.search(content)
        return "{" + match.group(1) + "}" if match else None

    def set_startup_project(self, project_id: str) -> None:
        guid = _braced(project_id)
        content = self._read()
        if content is None:
            content = _new_user_file(guid)
        elif _STARTUP_RE.search(content):
            content = _STARTUP_RE.sub(lambda _m: f"StartupProject = {guid}", content, count=1)
        else:
            marker = content.rfind("EndGlobalSection")
            if marker < 0:
                if content and not content.endswith("\n"):
                    content += "\n"
                content += _startup_section(guid)
            else:
                insert_at = marker + len("EndGlobalSection")
                content = content[:insert_at] + "\n" + _startup_section(guid).rstrip("\n") + content[insert_at:]
        self._write("set startup project", content)

    def clear_startup_project(self) -> None:
        content = self._read()
        if content is None:
            return
        updated = _STARTUP_SECTION_RE.sub("", content, count=1)
        updated = _EXTRA_BLANKS_RE.sub("\n\n", updated)
        if updated != content:
            self._write("clear startup project", updated)

    def get_active_framework(self) -> str | None:
        content = self._read()
        if content is None:
            return None
        match = _ACTIVE_FRAMEWORK_RE.search(content)
        return match.group(1).strip() if match else None

    def set_active_framework(self, framework: str | None) -> None:
        """Set or, with ``None``, remove the active framework line."""
        content = self._read()
        if content is None:
            if framework is None:
                return
            content = (
                "Microsoft Visual Studio Solution File, Format Version 12.00\n"
                f"Global\n\tActiveFramework = {framework}\nEndGlobal\n"
            )
        elif _ACTIVE_FRAMEWORK_RE.search(content):
            if framework is None:
                content = _ACTIVE_FRAMEWORK_LINE_RE.sub("", content, count=1)
            else:
                content = _ACTIVE_FRAMEWORK_RE.sub(lambda _m: f"ActiveFramework = {framework}", content, count=1)
        elif framework is not None:
            marker = content.rfind("EndGlobal")
            line = f"\tActiveFramework = {framework}\n"
            if marker >= 0 and not content.startswith("EndGlobalSection", marker):
                content = content[:marker] + line + content[marker:]
            else:
                if content and not content.endswith("\n"):
                    content += "\n"
                content += line.lstrip("\t")
        else:
            return
        self._write("set active framework", content)
