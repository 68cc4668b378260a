"""
Filesystem-backed vault: the hierarchical document store waypoints live in.

Paths are vault-relative POSIX strings ("Projects/Sub/c.md"); the root
container has the empty path. Events are emitted on the vault's EventBus
after the vault lock is released.
"""

import shutil
import logging
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from config import log_event, NOTE_EXTENSION
from models import Node, NodeKind
from services.events import EventBus, CREATE, DELETE, RENAME, MODIFY


class VaultError(Exception):
    """Invalid vault operation (unknown path, missing parent, existing target)."""


def normalize_path(path: str) -> str:
    return path.replace("\\", "/").strip("/")


def split_path(path: str) -> Tuple[str, str]:
    """Split a vault path into (parent path, name)."""
    parent, _, name = normalize_path(path).rpartition("/")
    return parent, name


def join_path(parent_path: str, name: str) -> str:
    return f"{parent_path}/{name}" if parent_path else name


def is_ignored(path: str) -> bool:
    """Dot-prefixed entries (.git, .waypoint, .obsidian, ...) are not part of the vault."""
    return any(part.startswith(".") for part in normalize_path(path).split("/") if part)


class Vault:
    def __init__(self, root_dir, bus: Optional[EventBus] = None):
        self.root_dir = Path(root_dir).expanduser().resolve()
        self.bus = bus or EventBus()
        self.root = Node(NodeKind.CONTAINER, name=self.root_dir.name, path="")
        self._index: Dict[str, Node] = {"": self.root}
        self._cache: Dict[str, str] = {}
        self._lock = threading.RLock()
        self._loaded = False
        self._ready_callbacks: List[Callable[[], None]] = []

    # --- LOADING ---

    def load(self):
        """Enumerate the tree from disk. No events are emitted for the initial scan."""
        self.root_dir.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self.root.children = []
            self._index = {"": self.root}
            self._cache.clear()
            self._scan(self.root)
            self._loaded = True
            callbacks, self._ready_callbacks = self._ready_callbacks, []
            count = len(self._index)
        log_event(logging.INFO, "vault_loaded", root=str(self.root_dir), nodes=count)
        for callback in callbacks:
            callback()

    def on_layout_ready(self, callback: Callable[[], None]):
        """Run `callback` once the initial load has finished (immediately if it already has)."""
        with self._lock:
            if not self._loaded:
                self._ready_callbacks.append(callback)
                return
        callback()

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def _scan(self, container: Node):
        directory = self.abs_path(container.path)
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if entry.name.startswith("."):
                continue
            kind = NodeKind.CONTAINER if entry.is_dir() else NodeKind.DOCUMENT
            node = self._attach(container, entry.name, kind)
            if node.is_container:
                self._scan(node)

    # --- LOOKUP ---

    def abs_path(self, path: str) -> Path:
        path = normalize_path(path)
        return self.root_dir / path if path else self.root_dir

    def relative_path(self, absolute) -> Optional[str]:
        """Vault path for an absolute filesystem path, or None when outside the vault."""
        try:
            rel = Path(absolute).resolve().relative_to(self.root_dir)
        except ValueError:
            return None
        return normalize_path(rel.as_posix()) if rel.parts else ""

    def get_by_path(self, path: str) -> Optional[Node]:
        with self._lock:
            return self._index.get(normalize_path(path))

    def parent_folder(self, path: str) -> Optional[Node]:
        """Live container that holds (or held) `path`."""
        parent_path, _ = split_path(path)
        node = self.get_by_path(parent_path)
        return node if node is not None and node.is_container else None

    def container_note(self, container: Node) -> Optional[Node]:
        """The document named after `container`, directly inside it."""
        note = self.get_by_path(join_path(container.path, container.name + NOTE_EXTENSION))
        return note if note is not None and note.is_document else None

    def is_live(self, node: Node) -> bool:
        return self.get_by_path(node.path) is node

    def documents(self) -> List[Node]:
        with self._lock:
            return [n for n in self._index.values() if n.is_document]

    # --- CONTENT ---

    def cached_read(self, document: Node) -> str:
        """Fast read; may be stale until the next invalidation."""
        with self._lock:
            cached = self._cache.get(document.path)
        if cached is not None:
            return cached
        return self.read(document)

    def read(self, document: Node) -> str:
        """Authoritative read from disk."""
        text = self.abs_path(document.path).read_text(encoding='utf-8')
        with self._lock:
            if self.is_live(document):
                self._cache[document.path] = text
        return text

    def modify(self, document: Node, text: str):
        with self._lock:
            if not self.is_live(document):
                raise VaultError(f"Document not in vault: {document.path}")
            self.abs_path(document.path).write_text(text, encoding='utf-8')
            self._cache[document.path] = text
        log_event(logging.DEBUG, "vault_modified", path=document.path, bytes=len(text))
        self.bus.emit(MODIFY, document)

    # --- MUTATIONS ---

    def create(self, path: str, text: str = "") -> Node:
        """Create a document at `path` inside an existing folder."""
        path = normalize_path(path)
        with self._lock:
            parent = self._require_free_slot(path)
            self.abs_path(path).write_text(text, encoding='utf-8')
            node = self._attach(parent, split_path(path)[1], NodeKind.DOCUMENT)
            self._cache[path] = text
        log_event(logging.INFO, "vault_created", path=path, kind=node.kind.value)
        self.bus.emit(CREATE, node)
        return node

    def create_folder(self, path: str) -> Node:
        path = normalize_path(path)
        with self._lock:
            parent = self._require_free_slot(path)
            self.abs_path(path).mkdir()
            node = self._attach(parent, split_path(path)[1], NodeKind.CONTAINER)
        log_event(logging.INFO, "vault_created", path=path, kind=node.kind.value)
        self.bus.emit(CREATE, node)
        return node

    def delete(self, path: str):
        path = normalize_path(path)
        with self._lock:
            node = self._index.get(path)
            if node is None or node.is_root:
                raise VaultError(f"Cannot delete {path!r}: not in vault")
            target = self.abs_path(path)
            if node.is_container:
                shutil.rmtree(target)
            else:
                target.unlink()
            parent = node.parent
            self._detach(node)
        log_event(logging.INFO, "vault_deleted", path=path)
        self.bus.emit(DELETE, path, parent)

    def rename(self, path: str, new_path: str) -> Node:
        path, new_path = normalize_path(path), normalize_path(new_path)
        with self._lock:
            node = self._index.get(path)
            if node is None or node.is_root:
                raise VaultError(f"Cannot rename {path!r}: not in vault")
            new_parent = self._require_free_slot(new_path)
            self.abs_path(path).rename(self.abs_path(new_path))
            self._relocate(node, new_parent, split_path(new_path)[1])
        log_event(logging.INFO, "vault_renamed", old_path=path, path=new_path)
        self.bus.emit(RENAME, node, path)
        return node

    # --- DISK SYNC (watcher entry points) ---

    def sync_created(self, path: str) -> Optional[Node]:
        path = normalize_path(path)
        if not path or is_ignored(path):
            return None
        with self._lock:
            if path in self._index:
                return None
            parent = self.parent_folder(path)
            target = self.abs_path(path)
            if parent is None or not target.exists():
                return None
            kind = NodeKind.CONTAINER if target.is_dir() else NodeKind.DOCUMENT
            node = self._attach(parent, split_path(path)[1], kind)
            if node.is_container:
                self._scan(node)
        log_event(logging.DEBUG, "vault_sync_created", path=path)
        self.bus.emit(CREATE, node)
        return node

    def sync_deleted(self, path: str):
        path = normalize_path(path)
        with self._lock:
            node = self._index.get(path)
            if node is None or node.is_root:
                return
            parent = node.parent
            self._detach(node)
        log_event(logging.DEBUG, "vault_sync_deleted", path=path)
        self.bus.emit(DELETE, path, parent)

    def sync_moved(self, path: str, new_path: str) -> Optional[Node]:
        path, new_path = normalize_path(path), normalize_path(new_path)
        if is_ignored(new_path):
            self.sync_deleted(path)
            return None
        if self.get_by_path(new_path) is not None:
            # Moved over an existing entry (atomic save): source goes, target changed
            self.sync_deleted(path)
            self.sync_modified(new_path)
            return self.get_by_path(new_path)
        with self._lock:
            node = self._index.get(path)
            new_parent = self.parent_folder(new_path)
            if node is None or new_parent is None:
                node = None
            else:
                self._relocate(node, new_parent, split_path(new_path)[1])
        if node is None:
            return self.sync_created(new_path)
        log_event(logging.DEBUG, "vault_sync_moved", old_path=path, path=new_path)
        self.bus.emit(RENAME, node, path)
        return node

    def sync_modified(self, path: str):
        path = normalize_path(path)
        with self._lock:
            node = self._index.get(path)
            if node is None or not node.is_document:
                return
            self._cache.pop(path, None)
        self.bus.emit(MODIFY, node)

    # --- TREE BOOKKEEPING (caller holds the lock) ---

    def _require_free_slot(self, path: str) -> Node:
        if not path or is_ignored(path):
            raise VaultError(f"Invalid vault path: {path!r}")
        if path in self._index:
            raise VaultError(f"Path already exists: {path}")
        parent = self.parent_folder(path)
        if parent is None:
            raise VaultError(f"No folder for {path!r}")
        return parent

    def _attach(self, parent: Node, name: str, kind: NodeKind) -> Node:
        node = Node(kind, name=name, path=join_path(parent.path, name), parent=parent)
        parent.children.append(node)
        self._index[node.path] = node
        return node

    def _subtree(self, node: Node) -> List[Node]:
        nodes = [node]
        for child in node.children:
            nodes.extend(self._subtree(child))
        return nodes

    def _detach(self, node: Node):
        if node.parent is not None and node in node.parent.children:
            node.parent.children.remove(node)
        for member in self._subtree(node):
            self._index.pop(member.path, None)
            self._cache.pop(member.path, None)

    def _relocate(self, node: Node, new_parent: Node, new_name: str):
        self._detach(node)
        node.name = new_name
        node.parent = new_parent
        new_parent.children.append(node)
        self._reindex(node, new_parent.path)

    def _reindex(self, node: Node, parent_path: str):
        node.path = join_path(parent_path, node.name)
        self._index[node.path] = node
        for child in node.children:
            self._reindex(child, node.path)
