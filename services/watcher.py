"""
Filesystem watcher feeding on-disk changes into the vault.
"""

import logging
from typing import Dict, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from config import log_event
from services.vault import Vault, is_ignored


class VaultEventHandler(FileSystemEventHandler):
    """
    Translates watchdog events into Vault.sync_* calls.

    Modified events whose mtime did not move are dropped; they come from reads,
    indexers and the like rather than real edits.
    """

    def __init__(self, vault: Vault):
        super().__init__()
        self._vault = vault
        self._last_mtime: Dict[str, float] = {}

    def _rel(self, path) -> Optional[str]:
        rel = self._vault.relative_path(path)
        if not rel or is_ignored(rel):
            return None
        return rel

    def on_created(self, event: FileSystemEvent) -> None:
        rel = self._rel(event.src_path)
        if rel is not None:
            self._vault.sync_created(rel)

    def on_deleted(self, event: FileSystemEvent) -> None:
        rel = self._rel(event.src_path)
        if rel is not None:
            self._last_mtime.pop(rel, None)
            self._vault.sync_deleted(rel)

    def on_moved(self, event: FileSystemEvent) -> None:
        src = self._vault.relative_path(event.src_path)
        dest = self._vault.relative_path(event.dest_path)
        if not src or is_ignored(src):
            if dest and not is_ignored(dest):
                if self._vault.get_by_path(dest) is not None:
                    self._vault.sync_modified(dest)
                else:
                    self._vault.sync_created(dest)
            return
        if dest is None:
            self._vault.sync_deleted(src)
            return
        self._vault.sync_moved(src, dest)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        rel = self._rel(event.src_path)
        if rel is None:
            return
        try:
            mtime = self._vault.abs_path(rel).stat().st_mtime
        except OSError:
            return
        if self._last_mtime.get(rel) == mtime:
            return
        self._last_mtime[rel] = mtime
        self._vault.sync_modified(rel)


class VaultWatcher:
    def __init__(self, vault: Vault):
        self.vault = vault
        self._observer = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> bool:
        """Start watching the vault directory. Returns True on success."""
        if self._observer is not None:
            return True
        try:
            observer = Observer()
            observer.schedule(VaultEventHandler(self.vault), str(self.vault.root_dir), recursive=True)
            observer.start()
        except OSError as e:
            log_event(logging.ERROR, "vault_watcher_start_failed", root=str(self.vault.root_dir), error=str(e))
            return False
        self._observer = observer
        log_event(logging.INFO, "vault_watcher_started", root=str(self.vault.root_dir))
        return True

    def stop(self):
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=2.0)
        self._observer = None
        log_event(logging.INFO, "vault_watcher_stopped")
