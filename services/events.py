"""
Minimal synchronous event bus connecting the vault to its listeners.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List

from config import log_event

# Event names emitted by the vault
CREATE = "create"
DELETE = "delete"
RENAME = "rename"
MODIFY = "modify"


@dataclass(eq=False)
class EventRef:
    """Handle returned by EventBus.on(), used to unsubscribe."""
    name: str
    handler: Callable


class EventBus:
    def __init__(self):
        self._handlers: Dict[str, List[EventRef]] = {}
        self._lock = threading.Lock()

    def on(self, name: str, handler: Callable) -> EventRef:
        ref = EventRef(name=name, handler=handler)
        with self._lock:
            self._handlers.setdefault(name, []).append(ref)
        return ref

    def off(self, ref: EventRef):
        with self._lock:
            refs = self._handlers.get(ref.name, [])
            if ref in refs:
                refs.remove(ref)

    def handler_count(self, name: str) -> int:
        with self._lock:
            return len(self._handlers.get(name, []))

    def emit(self, name: str, *args):
        """Call every handler for `name`. A failing handler never reaches the emitter."""
        with self._lock:
            refs = list(self._handlers.get(name, []))
        for ref in refs:
            try:
                ref.handler(*args)
            except Exception as e:
                log_event(logging.ERROR, "event_handler_failed", event=name, error=repr(e))
