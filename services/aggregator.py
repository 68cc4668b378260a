"""
Change aggregation: the pending folder set and the debounced flush trigger.
"""

import logging
import threading
from typing import Callable, List, Optional

from config import log_event
from models import Node

IDLE = "idle"
ARMED = "armed"
FLUSHING = "flushing"


class Debouncer:
    """
    idle -> armed -> flushing -> idle state machine around a threading.Timer.

    The first trigger of a burst arms the timer; triggers while armed are merged
    into that flush; triggers during a flush arm a fresh window once it ends.
    """

    def __init__(self, callback: Callable[[], None], interval: float):
        self._callback = callback
        self.interval = interval
        self._state = IDLE
        self._rearm = False
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        with self._lock:
            return self._state

    def trigger(self):
        with self._lock:
            if self._state == IDLE:
                self._state = ARMED
                self._start_timer()
            elif self._state == FLUSHING:
                self._rearm = True

    def flush_now(self) -> bool:
        """Run an armed flush synchronously. Returns False if nothing was armed."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        return self._fire()

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if self._state == ARMED:
                self._state = IDLE
            self._rearm = False

    def _start_timer(self):
        self._timer = threading.Timer(self.interval, self._fire)
        self._timer.daemon = True
        self._timer.start()

    def _fire(self) -> bool:
        with self._lock:
            if self._state != ARMED:
                return False
            self._state = FLUSHING
            self._timer = None

        try:
            self._callback()
        except Exception as e:
            log_event(logging.ERROR, "debounced_flush_failed", error=repr(e))
        finally:
            with self._lock:
                if self._rearm:
                    self._rearm = False
                    self._state = ARMED
                    self._start_timer()
                elif self._state == FLUSHING:
                    self._state = IDLE
        return True


class ChangeAggregator:
    """Folders touched since the last flush, deduplicated by identity."""

    def __init__(self, on_flush: Callable[[List[Node]], None], interval: float):
        self._pending = set()
        self._lock = threading.Lock()
        self._on_flush = on_flush
        self.debouncer = Debouncer(self._flush_pending, interval)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def record_change(self, container: Node):
        with self._lock:
            self._pending.add(container)
            size = len(self._pending)
        log_event(logging.DEBUG, "change_recorded", folder=container.path or "/", pending=size)
        self.debouncer.trigger()

    def flush(self) -> List[Node]:
        """Drain the pending set: snapshot, clear, return the snapshot."""
        with self._lock:
            drained = list(self._pending)
            self._pending.clear()
        return drained

    def _flush_pending(self):
        folders = self.flush()
        if folders:
            self._on_flush(folders)
