"""
Ancestor lookup: which document governs the waypoint for a given node.
"""

import logging
from typing import Optional

from config import log_event
from models import Node
from services.markdown import contains_waypoint


def locate_parent_waypoint(vault, node: Node, include_current_node: bool) -> Optional[Node]:
    """
    Walk up from `node` (or from its parent when `include_current_node` is False)
    and return the first container note holding a waypoint or flag.
    Returns None once the root has been passed without a match.
    """
    log_event(logging.DEBUG, "locate_parent_waypoint", node=node.path or "/", include_self=include_current_node)
    folder = node if include_current_node else node.parent
    while folder is not None:
        note = vault.container_note(folder) if folder.is_container else None
        if note is not None:
            try:
                text = vault.cached_read(note)
            except OSError as e:
                log_event(logging.WARNING, "folder_note_unreadable", path=note.path, error=str(e))
                text = ""
            if contains_waypoint(text):
                log_event(logging.DEBUG, "parent_waypoint_found", path=note.path)
                return note
        folder = folder.parent

    log_event(logging.DEBUG, "parent_waypoint_not_found", node=node.path or "/")
    return None
