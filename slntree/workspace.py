"""Explicit per-workspace context holding the single live solution model."""

from __future__ import annotations

import logging
from pathlib import Path

from .collaborators import (
    ExternalProjectCommand,
    FilesystemDirectoryLister,
    FilesystemRenameProvider,
    LoggingNotifier,
    Notifier,
    ProjectFileDependencyLister,
)
from .config import Settings, load_settings
from .solution_model import DiscoveryKind, SolutionModel, discover_solutions
from .tree_sync import TreeSyncController, TreeSyncDeps

logger = logging.getLogger(__name__)


class Workspace:
    """Owns at most one ``SolutionModel`` and its ``TreeSyncController``.

    Switching solutions disposes the previous model and controller before the
    new ones are opened.
    """

    def __init__(
        self,
        root: Path,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
        project_command: ExternalProjectCommand | None = None,
        deps: TreeSyncDeps | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.settings = settings or load_settings()
        self.notifier = notifier or LoggingNotifier()
        self.project_command = project_command
        self.deps = deps or TreeSyncDeps(
            directory_lister=FilesystemDirectoryLister(self.settings.skip_directories, self.settings.show_hidden),
            dependency_lister=ProjectFileDependencyLister(),
            notifier=self.notifier,
            rename_provider=FilesystemRenameProvider(),
        )
        self.model: SolutionModel | None = None
        self.controller: TreeSyncController | None = None

    def discover(self) -> Path | None:
        """Return the workspace's only solution, or ``None`` when there are zero or several."""
        result = discover_solutions(self.root)
        if result.kind is DiscoveryKind.MULTIPLE:
            names = ", ".join(path.name for path in result.paths)
            self.notifier.warning(f"Several solutions found: {names}")
        return result.solution_path

    def open_solution(self, solution_path: Path) -> TreeSyncController:
        """Open ``solution_path``; ``ParseError`` propagates and leaves no model open."""
        self.close()
        model = SolutionModel(
            Path(solution_path).resolve(),
            settings=self.settings,
            notifier=self.notifier,
            project_command=self.project_command,
        )
        model.open()
        controller = TreeSyncController(model, self.deps, settings=self.settings)
        controller.start()
        self.model = model
        self.controller = controller
        logger.info("workspace %s now tracks %s", self.root, model.solution_path.name)
        return controller

    def close(self) -> None:
        if self.controller is not None:
            self.controller.dispose()
            self.controller = None
        if self.model is not None:
            self.model.dispose()
            self.model = None
