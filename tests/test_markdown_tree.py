"""Marker scanning and tree rendering against small on-disk vaults."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from config import BEGIN_WAYPOINT, END_WAYPOINT, WAYPOINT_FLAG
from models import Node, NodeKind, WaypointSpan
from services.markdown import (
    build_waypoint,
    contains_waypoint,
    has_waypoint_flag,
    locate_waypoint,
    splice_waypoint,
)
from services.tree import render_tree
from tests.helpers import EMPTY_WAYPOINT, build_vault


class MarkerLocatorTests(unittest.TestCase):
    def test_begin_and_end_span(self) -> None:
        lines = ["# Title", BEGIN_WAYPOINT, "- old", END_WAYPOINT, "tail"]
        self.assertEqual(locate_waypoint(lines), WaypointSpan(start=1, end=3))

    def test_flag_is_single_line_span(self) -> None:
        lines = ["intro", f"  {WAYPOINT_FLAG}\t", "outro"]
        self.assertEqual(locate_waypoint(lines), WaypointSpan(start=1, end=1))

    def test_begin_without_end_is_single_line(self) -> None:
        lines = [BEGIN_WAYPOINT, "- stale entry"]
        self.assertEqual(locate_waypoint(lines), WaypointSpan(start=0, end=0))

    def test_first_start_marker_wins(self) -> None:
        lines = [WAYPOINT_FLAG, BEGIN_WAYPOINT, "- x", END_WAYPOINT]
        self.assertEqual(locate_waypoint(lines), WaypointSpan(start=0, end=3))

    def test_end_before_start_is_ignored(self) -> None:
        lines = [END_WAYPOINT, BEGIN_WAYPOINT, "- x", END_WAYPOINT]
        self.assertEqual(locate_waypoint(lines), WaypointSpan(start=1, end=3))

    def test_no_marker(self) -> None:
        self.assertIsNone(locate_waypoint(["nothing", "to see"]))
        self.assertIsNone(locate_waypoint([f"inline {BEGIN_WAYPOINT} mention"]))

    def test_flag_detection_is_line_based(self) -> None:
        self.assertTrue(has_waypoint_flag(f"a\n   {WAYPOINT_FLAG}\nb"))
        self.assertFalse(has_waypoint_flag(f"see {WAYPOINT_FLAG} here"))
        self.assertTrue(contains_waypoint(f"see {WAYPOINT_FLAG} here"))
        self.assertTrue(contains_waypoint(EMPTY_WAYPOINT))
        self.assertFalse(contains_waypoint(END_WAYPOINT))

    def test_splice_replaces_whole_span(self) -> None:
        lines = ["top", BEGIN_WAYPOINT, "- a", "- b", END_WAYPOINT, "bottom"]
        block = build_waypoint("- **X**")
        text = splice_waypoint(lines, locate_waypoint(lines), block)
        self.assertEqual(text, f"top\n{BEGIN_WAYPOINT}\n- **X**\n{END_WAYPOINT}\nbottom")
        self.assertEqual(text.count(BEGIN_WAYPOINT), 1)
        self.assertEqual(text.count(END_WAYPOINT), 1)


class TreeRendererTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.base = Path(self._tmpdir.name)

    def tearDown(self) -> None:
        self._tmpdir.cleanup()

    def test_projects_example(self) -> None:
        vault = build_vault(self.base / "Projects", {
            "b.md": "",
            "A.md": "",
            "Sub/c.md": "",
        })
        rendered = render_tree(vault, vault.root, 0, top_level=True)
        self.assertEqual(
            rendered,
            "- **Projects**\n\t- [[A]]\n\t- [[b]]\n\t- **Sub**\n\t\t- [[c]]",
        )

    def test_self_indexed_child_collapses(self) -> None:
        vault = build_vault(self.base / "Root", {
            "Sub/Sub.md": f"# Sub\n{EMPTY_WAYPOINT}\n",
            "Sub/deep/x.md": "",
            "Sub/y.md": "",
            "z.md": "",
        })
        rendered = render_tree(vault, vault.root, 0, top_level=True)
        self.assertEqual(rendered, "- **Root**\n\t- **[[Sub]]**\n\t- [[z]]")
        self.assertNotIn("[[y]]", rendered)
        self.assertNotIn("deep", rendered)

    def test_flagged_child_also_collapses(self) -> None:
        vault = build_vault(self.base / "Root", {
            "Sub/Sub.md": f"{WAYPOINT_FLAG}\n",
            "Sub/y.md": "",
        })
        self.assertEqual(render_tree(vault, vault.root, 0, top_level=True), "- **Root**\n\t- **[[Sub]]**")

    def test_note_without_marker_does_not_collapse(self) -> None:
        vault = build_vault(self.base / "Root", {
            "Sub/Sub.md": "plain note",
            "Sub/y.md": "",
        })
        self.assertEqual(
            render_tree(vault, vault.root, 0, top_level=True),
            "- **Root**\n\t- **Sub**\n\t\t- [[Sub]]\n\t\t- [[y]]",
        )

    def test_top_level_expands_despite_own_waypoint(self) -> None:
        vault = build_vault(self.base / "Root", {
            "Sub/Sub.md": EMPTY_WAYPOINT,
            "Sub/y.md": "",
        })
        sub = vault.get_by_path("Sub")
        self.assertEqual(render_tree(vault, sub, 0, top_level=True), "- **Sub**\n\t- [[Sub]]\n\t- [[y]]")

    def test_empty_folder_and_indentation(self) -> None:
        vault = build_vault(self.base / "Root", {"a/b/": "", "a/c.md": ""})
        self.assertEqual(
            render_tree(vault, vault.root, 0, top_level=True),
            "- **Root**\n\t- **a**\n\t\t- **b**\n\t\t- [[c]]",
        )
        self.assertEqual(render_tree(vault, vault.get_by_path("a/c.md"), 3), "\t\t\t- [[c]]")

    def test_sort_is_stable_for_case_ties(self) -> None:
        folder = Node(NodeKind.CONTAINER, name="F", path="F")
        for name in ("note.md", "Alpha.md", "NOTE.md", "alpha.txt"):
            folder.children.append(Node(NodeKind.DOCUMENT, name=name, path=f"F/{name}", parent=folder))
        rendered = render_tree(None, folder, 0, top_level=True)
        self.assertEqual(
            rendered.split("\n")[1:],
            ["\t- [[Alpha]]", "\t- [[alpha]]", "\t- [[note]]", "\t- [[NOTE]]"],
        )


if __name__ == "__main__":
    unittest.main()
