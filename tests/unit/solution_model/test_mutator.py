"""Tests for surgical solution text edits.

Each edit must leave untouched lines byte-identical, keep the file's newline
style, and return the input unchanged when its target is missing.
"""

from __future__ import annotations

import unittest
from pathlib import Path

from slntree.solution_model import build_hierarchy, parse
from slntree.solution_model import mutator

FOLDER = "{2150E333-8FDC-42A3-9474-1A3956D46DE8}"
CSHARP = "{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}"
SHARED_ID = "{AAAAAAAA-0000-0000-0000-000000000001}"
CORE_ID = "{AAAAAAAA-0000-0000-0000-000000000002}"
LIB_ID = "{AAAAAAAA-0000-0000-0000-000000000003}"
APP_ID = "{AAAAAAAA-0000-0000-0000-000000000004}"
DOCS_ID = "{AAAAAAAA-0000-0000-0000-000000000005}"

BASE = Path("/work")

NESTED = (
    "Microsoft Visual Studio Solution File, Format Version 12.00\n"
    f'Project("{FOLDER}") = "Shared", "Shared", "{SHARED_ID}"\n'
    "EndProject\n"
    f'Project("{FOLDER}") = "Core", "Core", "{CORE_ID}"\n'
    "EndProject\n"
    f'Project("{CSHARP}") = "Lib", "src\\Lib\\Lib.csproj", "{LIB_ID}"\n'
    "EndProject\n"
    f'Project("{CSHARP}") = "App", "src\\App\\App.csproj", "{APP_ID}"\n'
    "EndProject\n"
    "Global\n"
    "\tGlobalSection(ProjectConfigurationPlatforms) = postSolution\n"
    f"\t\t{LIB_ID}.Debug|Any CPU.ActiveCfg = Debug|Any CPU\n"
    f"\t\t{LIB_ID}.Debug|Any CPU.Build.0 = Debug|Any CPU\n"
    f"\t\t{APP_ID}.Debug|Any CPU.ActiveCfg = Debug|Any CPU\n"
    "\tEndGlobalSection\n"
    "\tGlobalSection(NestedProjects) = preSolution\n"
    f"\t\t{CORE_ID} = {SHARED_ID}\n"
    f"\t\t{LIB_ID} = {CORE_ID}\n"
    "\tEndGlobalSection\n"
    "EndGlobal\n"
)

DOCS = (
    "Microsoft Visual Studio Solution File, Format Version 12.00\n"
    f'Project("{FOLDER}") = "Docs", "Docs", "{DOCS_ID}"\n'
    "EndProject\n"
    "Global\n"
    "EndGlobal\n"
)


def entity_ids(text: str) -> set[str]:
    return {entity.id for entity in parse(text, BASE).entities}


class InsertGroupingTests(unittest.TestCase):
    def test_insert_at_root_goes_before_global(self) -> None:
        updated, new_id = mutator.insert_grouping(DOCS, "Build")

        assert new_id is not None
        lines = updated.split("\n")
        global_index = lines.index("Global")
        self.assertEqual(lines[global_index - 2], f'Project("{FOLDER}") = "Build", "Build", "{new_id}"')
        self.assertEqual(lines[global_index - 1], "EndProject")
        self.assertTrue(updated.startswith(DOCS.split("Global\n")[0]))
        entity = parse(updated, BASE).entity_by_id(new_id)
        assert entity is not None
        self.assertTrue(entity.is_grouping)
        self.assertEqual(entity.location, "Build")

    def test_new_ids_are_braced_uppercase_guids(self) -> None:
        entity_id = mutator.new_entity_id()

        self.assertRegex(entity_id, r"^\{[0-9A-F]{8}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{12}\}$")
        self.assertNotEqual(entity_id, mutator.new_entity_id())

    def test_insert_with_parent_creates_nested_projects_section(self) -> None:
        updated, new_id = mutator.insert_grouping(DOCS, "Api", parent_id=DOCS_ID)

        document = parse(updated, BASE)
        self.assertEqual([(e.child_id, e.parent_id) for e in document.hierarchy_edges], [(new_id, DOCS_ID)])
        self.assertIn(f"\tGlobalSection(NestedProjects) = preSolution\n\t\t{new_id} = {DOCS_ID}\n\tEndGlobalSection\nEndGlobal", updated)

    def test_insert_with_parent_appends_to_existing_section(self) -> None:
        updated, new_id = mutator.insert_grouping(NESTED, "Extra", parent_id=SHARED_ID)

        document = parse(updated, BASE)
        self.assertEqual(len(document.hierarchy_edges), 3)
        self.assertEqual(updated.count("GlobalSection(NestedProjects)"), 1)
        self.assertEqual(build_hierarchy(document).parent_of(new_id), SHARED_ID)

    def test_insert_without_global_block_appends(self) -> None:
        text = "Microsoft Visual Studio Solution File, Format Version 12.00\n"
        updated, new_id = mutator.insert_grouping(text, "Solo")

        self.assertEqual(updated, text + f'Project("{FOLDER}") = "Solo", "Solo", "{new_id}"\nEndProject\n')

    def test_insert_with_parent_and_no_global_block_creates_one(self) -> None:
        text = f'Project("{FOLDER}") = "Docs", "Docs", "{DOCS_ID}"\nEndProject\n'
        updated, new_id = mutator.insert_grouping(text, "Child", parent_id=DOCS_ID)

        document = parse(updated, BASE)
        self.assertEqual(len(document.entities), 2)
        self.assertEqual(document.hierarchy_edges[0].child_id, new_id)
        self.assertTrue(updated.endswith("EndGlobal\n"))

    def test_unknown_parent_is_a_no_op(self) -> None:
        updated, new_id = mutator.insert_grouping(DOCS, "Orphan", parent_id="{00000000-0000-0000-0000-000000000000}")

        self.assertEqual(updated, DOCS)
        self.assertIsNone(new_id)

    def test_project_parent_is_a_no_op(self) -> None:
        updated, new_id = mutator.insert_grouping(NESTED, "Orphan", parent_id=APP_ID)

        self.assertEqual(updated, NESTED)
        self.assertIsNone(new_id)

    def test_crlf_newlines_are_preserved(self) -> None:
        crlf = DOCS.replace("\n", "\r\n")
        updated, _new_id = mutator.insert_grouping(crlf, "Build", parent_id=DOCS_ID)

        self.assertNotIn("\n", updated.replace("\r\n", ""))


class RemoveTests(unittest.TestCase):
    def test_removing_missing_id_returns_identical_text(self) -> None:
        missing = "{00000000-0000-0000-0000-000000000000}"

        self.assertEqual(mutator.remove_entity(NESTED, missing), NESTED)
        self.assertEqual(mutator.remove_grouping(NESTED, missing), NESTED)

    def test_remove_after_insert_restores_entity_set(self) -> None:
        inserted, new_id = mutator.insert_grouping(NESTED, "Temp", parent_id=CORE_ID)
        assert new_id is not None

        removed = mutator.remove_grouping(inserted, new_id)

        self.assertEqual(entity_ids(removed), entity_ids(NESTED))
        self.assertEqual(parse(removed, BASE).hierarchy_edges, parse(NESTED, BASE).hierarchy_edges)

    def test_cascade_removes_descendants_and_their_rows(self) -> None:
        before = parse(NESTED, BASE)
        descendants = build_hierarchy(before).descendants(SHARED_ID)

        updated = mutator.remove_grouping(NESTED, SHARED_ID)
        after = parse(updated, BASE)

        self.assertEqual(len(before.entities) - len(after.entities), len(descendants) + 1)
        self.assertEqual([entity.id for entity in after.entities], [APP_ID])
        removed = {SHARED_ID, CORE_ID, LIB_ID}
        for edge in after.hierarchy_edges:
            self.assertNotIn(edge.child_id, removed)
            self.assertNotIn(edge.parent_id, removed)
        self.assertNotIn(LIB_ID, updated)
        self.assertIn(f"{APP_ID}.Debug|Any CPU.ActiveCfg", updated)

    def test_shared_and_core_scenario_leaves_no_nested_rows(self) -> None:
        text = (
            f'Project("{FOLDER}") = "Shared", "Shared", "{SHARED_ID}"\n'
            "EndProject\n"
            f'Project("{FOLDER}") = "Core", "Core", "{CORE_ID}"\n'
            "EndProject\n"
            "Global\n"
            "\tGlobalSection(NestedProjects) = preSolution\n"
            f"\t\t{CORE_ID} = {SHARED_ID}\n"
            "\tEndGlobalSection\n"
            "EndGlobal\n"
        )

        updated = mutator.remove_grouping(text, SHARED_ID)
        document = parse(updated, BASE)

        self.assertIsNone(document.find_grouping("Shared"))
        self.assertIsNone(document.find_grouping("Core"))
        self.assertEqual(document.hierarchy_edges, ())
        self.assertEqual(updated, "Global\nEndGlobal\n")

    def test_cyclic_edges_do_not_loop(self) -> None:
        text = NESTED.replace(f"\t\t{LIB_ID} = {CORE_ID}\n", f"\t\t{LIB_ID} = {CORE_ID}\n\t\t{SHARED_ID} = {CORE_ID}\n")

        updated = mutator.remove_grouping(text, SHARED_ID)

        self.assertEqual(entity_ids(updated), {APP_ID})

    def test_remove_grouping_ignores_projects(self) -> None:
        self.assertEqual(mutator.remove_grouping(NESTED, APP_ID), NESTED)


class RenameGroupingTests(unittest.TestCase):
    def test_rename_touches_only_name_segments(self) -> None:
        updated = mutator.rename_grouping(NESTED, CORE_ID, "Kernel")

        before_lines = NESTED.split("\n")
        after_lines = updated.split("\n")
        changed = [i for i, (a, b) in enumerate(zip(before_lines, after_lines)) if a != b]
        self.assertEqual(len(changed), 1)
        self.assertEqual(after_lines[changed[0]], f'Project("{FOLDER}") = "Kernel", "Kernel", "{CORE_ID}"')

    def test_rename_with_stale_current_name_is_a_no_op(self) -> None:
        self.assertEqual(mutator.rename_grouping(NESTED, CORE_ID, "Kernel", current_name="Other"), NESTED)

    def test_rename_project_id_is_a_no_op(self) -> None:
        self.assertEqual(mutator.rename_grouping(NESTED, APP_ID, "Renamed"), NESTED)

    def test_rename_rejects_quotes(self) -> None:
        with self.assertRaises(ValueError):
            mutator.rename_grouping(NESTED, CORE_ID, 'bad"name')


class GroupedItemTests(unittest.TestCase):
    def test_docs_readme_added_once(self) -> None:
        once = mutator.add_grouped_item(DOCS, DOCS_ID, "readme.md")
        twice = mutator.add_grouped_item(once, DOCS_ID, "readme.md")

        self.assertEqual(twice, once)
        self.assertEqual(once.count("readme.md = readme.md"), 1)
        self.assertIn(
            "\tProjectSection(SolutionItems) = preProject\n\t\treadme.md = readme.md\n\tEndProjectSection\nEndProject",
            once,
        )
        docs = parse(once, BASE).entity_by_id(DOCS_ID)
        assert docs is not None
        self.assertEqual(docs.grouped_items(), ["readme.md"])

    def test_second_item_joins_existing_section(self) -> None:
        text = mutator.add_grouped_item(DOCS, DOCS_ID, "readme.md")
        text = mutator.add_grouped_item(text, DOCS_ID, "docs\\guide.md")

        self.assertEqual(text.count("ProjectSection(SolutionItems)"), 1)
        docs = parse(text, BASE).entity_by_id(DOCS_ID)
        assert docs is not None
        self.assertEqual(docs.grouped_items(), ["readme.md", "docs/guide.md"])

    def test_backslash_duplicate_is_detected(self) -> None:
        text = mutator.add_grouped_item(DOCS, DOCS_ID, "docs/guide.md")

        self.assertEqual(mutator.add_grouped_item(text, DOCS_ID, "docs\\guide.md"), text)

    def test_add_to_missing_grouping_is_a_no_op(self) -> None:
        self.assertEqual(mutator.add_grouped_item(DOCS, APP_ID, "readme.md"), DOCS)

    def test_removing_last_item_drops_section(self) -> None:
        text = mutator.add_grouped_item(DOCS, DOCS_ID, "readme.md")

        self.assertEqual(mutator.remove_grouped_item(text, "readme.md"), DOCS)

    def test_removing_one_of_two_items_keeps_section(self) -> None:
        text = mutator.add_grouped_item(DOCS, DOCS_ID, "a.md")
        text = mutator.add_grouped_item(text, DOCS_ID, "b.md")

        updated = mutator.remove_grouped_item(text, "a.md", grouping_id=DOCS_ID)

        docs = parse(updated, BASE).entity_by_id(DOCS_ID)
        assert docs is not None
        self.assertEqual(docs.grouped_items(), ["b.md"])

    def test_removing_unknown_item_is_a_no_op(self) -> None:
        text = mutator.add_grouped_item(DOCS, DOCS_ID, "a.md")

        self.assertEqual(mutator.remove_grouped_item(text, "missing.md"), text)

    def test_relative_item_path_uses_forward_slashes(self) -> None:
        self.assertEqual(mutator.relative_item_path(Path("/work"), Path("/work/docs/a.md")), "docs/a.md")


TRUNCATED_ITEMS = (
    "Microsoft Visual Studio Solution File, Format Version 12.00\n"
    f'Project("{FOLDER}") = "Docs", "Docs", "{DOCS_ID}"\n'
    "\tProjectSection(SolutionItems) = preProject\n"
    "\t\ta.md = a.md\n"
    "\t\tb.md = b.md"
)


class TruncatedItemsSectionTests(unittest.TestCase):
    def test_removing_first_item_keeps_the_last_row(self) -> None:
        updated = mutator.remove_grouped_item(TRUNCATED_ITEMS, "a.md")

        self.assertEqual(updated, TRUNCATED_ITEMS.replace("\t\ta.md = a.md\n", ""))

    def test_last_row_is_found_without_terminators(self) -> None:
        updated = mutator.remove_grouped_item(TRUNCATED_ITEMS, "b.md", grouping_id=DOCS_ID)

        self.assertEqual(updated, TRUNCATED_ITEMS.replace("\n\t\tb.md = b.md", ""))

    def test_last_row_counts_as_duplicate_and_new_rows_append(self) -> None:
        self.assertEqual(mutator.add_grouped_item(TRUNCATED_ITEMS, DOCS_ID, "b.md"), TRUNCATED_ITEMS)
        self.assertEqual(
            mutator.add_grouped_item(TRUNCATED_ITEMS, DOCS_ID, "c.md"),
            TRUNCATED_ITEMS + "\n\t\tc.md = c.md",
        )


if __name__ == "__main__":
    unittest.main()
