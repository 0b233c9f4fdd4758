"""Command-line behavior tests for ``slntree.cli.main``.

Runs the entry point against temporary solutions with config and expansion
state redirected into the temp directory.
"""

from __future__ import annotations

import contextlib
import io
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from slntree import cli

FOLDER = "{2150E333-8FDC-42A3-9474-1A3956D46DE8}"
CSHARP = "{9A19103F-16F7-4668-BE54-9A1E7A4F7556}"
SRC_ID = "{E0000000-0000-0000-0000-000000000001}"
APP_ID = "{E0000000-0000-0000-0000-000000000002}"

SOLUTION = (
    "Microsoft Visual Studio Solution File, Format Version 12.00\n"
    f'Project("{FOLDER}") = "src", "src", "{SRC_ID}"\n'
    "EndProject\n"
    f'Project("{CSHARP}") = "App", "src\\App\\App.csproj", "{APP_ID}"\n'
    "EndProject\n"
    "Global\n"
    "\tGlobalSection(NestedProjects) = preSolution\n"
    f"\t\t{APP_ID} = {SRC_ID}\n"
    "\tEndGlobalSection\n"
    "EndGlobal\n"
)


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        self.workspace = self.root / "work"
        self.workspace.mkdir()
        self.solution = self.workspace / "Demo.sln"
        self.solution.write_text(SOLUTION, encoding="utf-8")
        app_dir = self.workspace / "src" / "App"
        app_dir.mkdir(parents=True)
        (app_dir / "App.csproj").write_text('<Project Sdk="Microsoft.NET.Sdk" />\n', encoding="utf-8")
        (app_dir / "Program.cs").write_text("", encoding="utf-8")
        for target, path in (
            ("slntree.config.CONFIG_PATH", self.root / "config" / "slntree.json"),
            ("slntree.tree_sync.persistence.STATE_PATH", self.root / "state" / "expanded.json"),
        ):
            patcher = mock.patch(target, path)
            patcher.start()
            self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def run_cli(self, *argv: str) -> tuple[int, list[str], str]:
        out = io.StringIO()
        err = io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            status = cli.main(list(argv))
        return status, out.getvalue().splitlines(), err.getvalue()

    def test_prints_collapsed_tree_for_solution_file(self) -> None:
        status, lines, _err = self.run_cli(str(self.solution))

        self.assertEqual(status, 0)
        self.assertEqual(lines, ["▾ Demo", "  ▸ src"])

    def test_directory_argument_discovers_solution(self) -> None:
        status, lines, _err = self.run_cli(str(self.workspace))

        self.assertEqual(status, 0)
        self.assertEqual(lines[0], "▾ Demo")

    def test_missing_solution_exits_with_error(self) -> None:
        empty = self.root / "empty"
        empty.mkdir()

        status, lines, err = self.run_cli(str(empty))

        self.assertEqual(status, 1)
        self.assertEqual(lines, [])
        self.assertIn("no single solution found", err)

    def test_add_folder_writes_file_and_prints_new_id(self) -> None:
        status, lines, _err = self.run_cli(str(self.solution), "--add-folder", "Docs", "--parent", "src")

        self.assertEqual(status, 0)
        self.assertRegex(lines[0], r"^\{[0-9A-F-]{36}\}$")
        self.assertIn('"Docs", "Docs"', self.solution.read_text(encoding="utf-8"))
        self.assertEqual(lines[1:], ["▾ Demo", "  ▸ src"])

    def test_rename_of_unknown_folder_reports_no_change(self) -> None:
        before = self.solution.read_text(encoding="utf-8")

        status, _lines, err = self.run_cli(str(self.solution), "--rename-folder", "nope", "other")

        self.assertEqual(status, 1)
        self.assertIn("nothing changed", err)
        self.assertEqual(self.solution.read_text(encoding="utf-8"), before)

    def test_expand_all_opens_folders_and_projects(self) -> None:
        status, lines, _err = self.run_cli(str(self.solution), "--expand-all")

        self.assertEqual(status, 0)
        self.assertEqual(
            lines,
            [
                "▾ Demo",
                "  ▾ src",
                "    ▾ App",
                "      ▸ Dependencies",
                "        Program.cs",
            ],
        )


if __name__ == "__main__":
    unittest.main()
