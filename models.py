"""
Data structures (dataclasses) for Waypoint.
"""

import enum
from dataclasses import dataclass, field
from typing import List, Optional


class NodeKind(enum.Enum):
    DOCUMENT = "document"
    CONTAINER = "container"


@dataclass(eq=False)
class Node:
    """A vault entry: a document (leaf) or a container (folder).

    Nodes compare and hash by identity, so a renamed node stays the same
    member of any set it was added to.
    """
    kind: NodeKind
    name: str
    path: str
    parent: Optional["Node"] = None
    children: List["Node"] = field(default_factory=list)

    @property
    def is_document(self) -> bool:
        return self.kind is NodeKind.DOCUMENT

    @property
    def is_container(self) -> bool:
        return self.kind is NodeKind.CONTAINER

    @property
    def is_root(self) -> bool:
        return self.is_container and self.parent is None

    @property
    def basename(self) -> str:
        """Name without its last extension (documents only)."""
        if self.is_container:
            return self.name
        stem, dot, _ = self.name.rpartition(".")
        return stem if dot and stem else self.name

    def __repr__(self) -> str:
        return f"Node({self.kind.value}, {self.path!r})"


@dataclass
class WaypointSpan:
    """Inclusive line range of a waypoint block in a document."""
    start: int
    end: int  # == start for a bare flag or an unterminated begin marker


@dataclass
class RebuildResult:
    """Outcome of rebuilding one waypoint."""
    status: str  # "updated", "unchanged", "no_marker", "missing"
    path: str
    line_start: Optional[int] = None
    line_end: Optional[int] = None
    timestamp: str = ""

    @property
    def ok(self) -> bool:
        return self.status in ("updated", "unchanged")
