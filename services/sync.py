"""
Waypoint synchronization engine.

Listens to vault events, collects the folders they touch, and rebuilds the
waypoint governing each folder once the burst has settled. A document edited
to contain a bare flag is rebuilt immediately, together with its parent's
governing waypoint so the new sub-index collapses one level up.
"""

import logging
import threading
from collections import deque
from dataclasses import asdict
from datetime import datetime
from typing import Callable, Dict, List, Optional

from config import log_event, DEBOUNCE_SECONDS
from models import Node, RebuildResult
from services.aggregator import ChangeAggregator
from services.events import CREATE, DELETE, RENAME, MODIFY
from services.markdown import build_waypoint, has_waypoint_flag, locate_waypoint, splice_waypoint
from services.resolver import locate_parent_waypoint
from services.tree import render_tree
from services.vault import Vault, VaultError

RESULT_HISTORY = 50


class WaypointEngine:
    def __init__(self, vault: Vault, debounce_seconds: float = DEBOUNCE_SECONDS):
        self.vault = vault
        self.aggregator = ChangeAggregator(self.update_changed_folders, debounce_seconds)
        self.results = deque(maxlen=RESULT_HISTORY)
        self._refs = []
        self._listeners: List[Callable[[Dict], None]] = []
        # Handlers and flushes never overlap
        self._lock = threading.RLock()

    # --- LIFECYCLE ---

    def start(self):
        """Subscribe to vault events once the vault has finished its initial load."""
        self.vault.on_layout_ready(self._register_events)

    def _register_events(self):
        if self._refs:
            log_event(logging.WARNING, "waypoint_engine_already_started")
            return
        bus = self.vault.bus
        self._refs = [
            bus.on(CREATE, self.on_create),
            bus.on(DELETE, self.on_delete),
            bus.on(RENAME, self.on_rename),
            bus.on(MODIFY, self.detect_waypoint_flag),
        ]
        log_event(logging.INFO, "waypoint_engine_started", root=str(self.vault.root_dir))

    def stop(self, flush: bool = True):
        """Unsubscribe; pending changes are flushed unless `flush` is False."""
        for ref in self._refs:
            self.vault.bus.off(ref)
        self._refs = []
        if flush:
            self.aggregator.debouncer.flush_now()
        else:
            self.aggregator.debouncer.cancel()
            dropped = self.aggregator.flush()
            if dropped:
                log_event(logging.INFO, "pending_changes_dropped", folders=len(dropped))
        log_event(logging.INFO, "waypoint_engine_stopped")

    @property
    def running(self) -> bool:
        return bool(self._refs)

    @property
    def pending_count(self) -> int:
        return len(self.aggregator)

    def flush(self) -> bool:
        """Process pending folder changes now instead of waiting for the timer."""
        return self.aggregator.debouncer.flush_now()

    def add_listener(self, listener: Callable[[Dict], None]):
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[Dict], None]):
        if listener in self._listeners:
            self._listeners.remove(listener)

    # --- EVENT HANDLERS ---

    def on_create(self, node: Node):
        with self._lock:
            log_event(logging.DEBUG, "event_create", path=node.path)
            self._record_live(node.parent, "create", node.path)

    def on_delete(self, path: str, parent: Optional[Node] = None):
        with self._lock:
            log_event(logging.DEBUG, "event_delete", path=path)
            folder = parent if parent is not None else self.vault.parent_folder(path)
            self._record_live(folder, "delete", path)

    def on_rename(self, node: Node, old_path: str):
        with self._lock:
            log_event(logging.DEBUG, "event_rename", old_path=old_path, path=node.path)
            self._record_live(node.parent, "rename", node.path)
            self._record_live(self.vault.parent_folder(old_path), "rename", old_path)

    def detect_waypoint_flag(self, document: Node):
        """On modification, rebuild right away if the document carries a bare flag."""
        with self._lock:
            if not document.is_document or not self.vault.is_live(document):
                return
            try:
                text = self.vault.cached_read(document)
            except OSError as e:
                log_event(logging.WARNING, "flag_scan_failed", path=document.path, error=str(e))
                return
            if not has_waypoint_flag(text):
                log_event(logging.DEBUG, "waypoint_flag_absent", path=document.path)
                return

            log_event(logging.INFO, "waypoint_flag_found", path=document.path)
            self.update_waypoint(document)
            if document.parent is not None:
                self.update_parent_waypoint(document.parent, False)

    def _record_live(self, folder: Optional[Node], event: str, path: str):
        if folder is None or not folder.is_container or not self.vault.is_live(folder):
            log_event(logging.DEBUG, "event_parent_unresolved", event=event, path=path)
            return
        self.aggregator.record_change(folder)

    # --- REBUILDS ---

    def update_changed_folders(self, folders: List[Node]):
        """Rebuild the governing waypoint of every drained folder, each document once."""
        with self._lock:
            log_event(logging.INFO, "changed_folders_update", folders=len(folders))
            rebuilt = set()
            for folder in folders:
                waypoint = locate_parent_waypoint(self.vault, folder, True)
                if waypoint is None or waypoint in rebuilt:
                    continue
                rebuilt.add(waypoint)
                self.update_waypoint(waypoint)

    def update_parent_waypoint(self, node: Node, include_current_node: bool) -> Optional[RebuildResult]:
        with self._lock:
            waypoint = locate_parent_waypoint(self.vault, node, include_current_node)
            if waypoint is None:
                return None
            return self.update_waypoint(waypoint)

    def render_waypoint(self, folder: Node) -> str:
        """Full begin/end block indexing `folder`."""
        return build_waypoint(render_tree(self.vault, folder, 0, top_level=True))

    def update_waypoint(self, document: Node) -> RebuildResult:
        """Replace the waypoint block of `document` with a fresh index of its folder."""
        with self._lock:
            log_event(logging.INFO, "waypoint_update_start", path=document.path)
            try:
                text = self.vault.read(document)
            except OSError as e:
                log_event(logging.WARNING, "waypoint_document_missing", path=document.path, error=str(e))
                return self._finish(RebuildResult(status="missing", path=document.path))

            lines = text.split('\n')
            span = locate_waypoint(lines)
            if span is None:
                log_event(logging.ERROR, "waypoint_marker_missing", path=document.path)
                return self._finish(RebuildResult(status="no_marker", path=document.path))

            result = RebuildResult(status="updated", path=document.path, line_start=span.start, line_end=span.end)
            new_text = splice_waypoint(lines, span, self.render_waypoint(document.parent))
            if new_text == text:
                result.status = "unchanged"
                return self._finish(result)

            try:
                self.vault.modify(document, new_text)
            except (OSError, VaultError) as e:
                log_event(logging.WARNING, "waypoint_write_failed", path=document.path, error=str(e))
                result.status = "missing"
            return self._finish(result)

    def _finish(self, result: RebuildResult) -> RebuildResult:
        result.timestamp = datetime.now().isoformat()
        self.results.append(result)
        log_event(logging.INFO, "waypoint_update_done", path=result.path, status=result.status,
                  line_start=result.line_start, line_end=result.line_end)
        payload = {"type": "waypoint_updated", "result": asdict(result)}
        for listener in list(self._listeners):
            try:
                listener(payload)
            except Exception as e:
                log_event(logging.DEBUG, "waypoint_listener_failed", error=str(e))
        return result
