"""Services package for Waypoint."""

from services.events import (
    EventBus,
    EventRef,
)

from services.vault import (
    Vault,
    VaultError,
)

from services.markdown import (
    contains_waypoint,
    has_waypoint_flag,
    locate_waypoint,
    build_waypoint,
    splice_waypoint,
)

from services.tree import render_tree
from services.resolver import locate_parent_waypoint
from services.aggregator import ChangeAggregator, Debouncer
from services.sync import WaypointEngine

__all__ = [
    # Events
    "EventBus",
    "EventRef",
    # Vault
    "Vault",
    "VaultError",
    # Markdown
    "contains_waypoint",
    "has_waypoint_flag",
    "locate_waypoint",
    "build_waypoint",
    "splice_waypoint",
    # Sync
    "render_tree",
    "locate_parent_waypoint",
    "ChangeAggregator",
    "Debouncer",
    "WaypointEngine",
]
