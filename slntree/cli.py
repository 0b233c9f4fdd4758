"""Command-line front door for slntree.

Resolves a solution from a file or workspace directory, applies at most one
folder/item/startup edit, then prints the tree. ``--watch`` keeps polling and
reprints after every rebuild.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from .errors import MutationReport, SolutionError
from .solution_model import SolutionModel
from .tree_sync import LAZY_KINDS, TreeSyncController, format_tree, iter_nodes
from .workspace import Workspace

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="slntree", description="Show and edit a Visual Studio solution tree.")
    parser.add_argument("path", nargs="?", help="solution file or workspace directory (default: .)")
    edits = parser.add_mutually_exclusive_group()
    edits.add_argument("--add-folder", metavar="NAME", help="add a solution folder")
    edits.add_argument("--remove-folder", metavar="NAME", help="remove a solution folder and its contents")
    edits.add_argument("--rename-folder", nargs=2, metavar=("OLD", "NEW"), help="rename a solution folder")
    edits.add_argument("--add-item", nargs=2, metavar=("FOLDER", "PATH"), help="add a file to a solution folder")
    edits.add_argument("--remove-item", metavar="PATH", help="remove a solution item")
    edits.add_argument("--set-startup", metavar="PROJECT", help="set the startup project")
    parser.add_argument("--parent", metavar="NAME", help="parent folder for --add-folder")
    parser.add_argument("--folder", metavar="NAME", help="restrict --remove-item to one folder")
    parser.add_argument("--expand-all", action="store_true", help="expand every node before printing")
    parser.add_argument("--watch", action="store_true", help="keep polling and reprint on change")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser


def resolve_solution(workspace: Workspace, target: Path) -> Path | None:
    if target.is_file():
        return target.resolve()
    return workspace.discover()


def apply_edit(model: SolutionModel, args: argparse.Namespace) -> MutationReport | None:
    if args.add_folder:
        return model.add_grouping(args.add_folder, args.parent)
    if args.remove_folder:
        return model.remove_grouping(args.remove_folder)
    if args.rename_folder:
        old_name, new_name = args.rename_folder
        return model.rename_grouping(old_name, new_name)
    if args.add_item:
        folder, item = args.add_item
        return model.add_grouped_item(folder, Path(item).resolve())
    if args.remove_item:
        return model.remove_grouped_item(Path(args.remove_item).resolve(), args.folder)
    if args.set_startup:
        return model.set_startup_project(Path(args.set_startup).resolve())
    return None


def expand_all(controller: TreeSyncController) -> None:
    """Expand grouping folders and projects; directories stay collapsed."""
    changed = True
    while changed and controller.root is not None:
        changed = False
        for node in list(iter_nodes(controller.root)):
            if node.expanded or not node.has_children:
                continue
            if node.kind in LAZY_KINDS and node.kind != "project":
                continue
            if controller.expand(node.token):
                changed = True


def print_tree(controller: TreeSyncController) -> None:
    for row in format_tree(controller.root):
        print(row)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    target = Path(args.path or ".")
    workspace = Workspace(target if target.is_dir() else target.parent)
    solution_path = resolve_solution(workspace, target)
    if solution_path is None:
        print(f"slntree: no single solution found in {workspace.root}", file=sys.stderr)
        return 1

    try:
        controller = workspace.open_solution(solution_path)
        report = apply_edit(controller.model, args)
    except SolutionError as exc:
        print(f"slntree: {exc}", file=sys.stderr)
        workspace.close()
        return 1

    status = 0
    if report is not None:
        if not report.changed:
            print(f"slntree: nothing changed ({report.reason})", file=sys.stderr)
            status = 1
        elif report.result:
            print(report.result)
        controller.flush()

    if args.expand_all:
        expand_all(controller)
    print_tree(controller)

    if args.watch:
        try:
            while True:
                time.sleep(workspace.settings.poll_seconds)
                if controller.poll():
                    print()
                    print_tree(controller)
        except KeyboardInterrupt:
            pass
    workspace.close()
    return status
