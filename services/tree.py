"""
Folder tree rendering for waypoint blocks.
"""

from typing import Dict, Optional

from models import Node
from services.markdown import contains_waypoint

INDENT = "\t"


def _indexed_note(vault, container: Node, memo: Dict[int, Optional[Node]]) -> Optional[Node]:
    """Container note of `container` if it already holds a waypoint or flag."""
    key = id(container)
    if key not in memo:
        note = vault.container_note(container)
        if note is not None:
            try:
                if not contains_waypoint(vault.cached_read(note)):
                    note = None
            except OSError:
                note = None
        memo[key] = note
    return memo[key]


def render_tree(vault, node: Node, indent_level: int, top_level: bool = False,
                memo: Optional[Dict[int, Optional[Node]]] = None) -> Optional[str]:
    """
    Render `node` as an indented bullet list.

    Documents become `- [[basename]]`. Containers become `- **name**` followed by
    their children sorted case-insensitively, except that a non top-level
    container whose note already holds a waypoint collapses to a single
    `- **[[note]]**` link.
    """
    if memo is None:
        memo = {}
    bullet = INDENT * indent_level + "-"

    if node.is_document:
        return f"{bullet} [[{node.basename}]]"

    if node.is_container:
        if not top_level:
            note = _indexed_note(vault, node, memo)
            if note is not None:
                return f"{bullet} **[[{note.basename}]]**"

        text = f"{bullet} **{node.name}**"
        if node.children:
            children = sorted(node.children, key=lambda child: child.name.lower())
            rendered = [render_tree(vault, child, indent_level + 1, memo=memo) for child in children]
            text += "\n" + "\n".join(line for line in rendered if line)
        return text

    return None
