"""
Markdown waypoint block operations: marker detection, span lookup and splicing.
"""

import logging
from typing import List, Optional

from config import (
    log_event,
    WAYPOINT_FLAG,
    BEGIN_WAYPOINT,
    END_WAYPOINT,
)
from models import WaypointSpan


def contains_waypoint(content: str) -> bool:
    """True if the text holds a waypoint or a flag anywhere (used to detect self-indexed folders)."""
    return BEGIN_WAYPOINT in content or WAYPOINT_FLAG in content


def has_waypoint_flag(content: str) -> bool:
    """True if some line, once trimmed, is exactly the bare flag."""
    return any(line.strip() == WAYPOINT_FLAG for line in content.split('\n'))


def locate_waypoint(lines: List[str]) -> Optional[WaypointSpan]:
    """
    Find the block to replace.
    The first flag or begin line starts it; the first end line after that closes it.
    Without an end line the span is the start line alone.
    """
    start = -1
    for i, line in enumerate(lines):
        trimmed = line.strip()
        if start == -1:
            if trimmed == WAYPOINT_FLAG or trimmed == BEGIN_WAYPOINT:
                start = i
        elif trimmed == END_WAYPOINT:
            return WaypointSpan(start=start, end=i)

    if start == -1:
        return None
    return WaypointSpan(start=start, end=start)


def build_waypoint(tree: str) -> str:
    """Wrap a rendered tree in begin/end markers."""
    return f"{BEGIN_WAYPOINT}\n{tree}\n{END_WAYPOINT}"


def splice_waypoint(lines: List[str], span: WaypointSpan, block: str) -> str:
    """Replace the lines of `span` (inclusive) with `block` and rejoin the text."""
    log_event(logging.DEBUG, "waypoint_span_replaced", line_start=span.start, line_end=span.end)
    spliced = lines[:span.start] + [block] + lines[span.end + 1:]
    return '\n'.join(spliced)
