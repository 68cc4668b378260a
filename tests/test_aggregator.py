"""Debouncer state machine, pending-change set and event bus behaviour."""

from __future__ import annotations

import unittest
from typing import List

from models import Node, NodeKind
from services.aggregator import ARMED, FLUSHING, IDLE, ChangeAggregator, Debouncer
from services.events import EventBus


class DebouncerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.calls: List[str] = []
        self.debouncer = Debouncer(lambda: self.calls.append(self.debouncer.state), interval=60)

    def tearDown(self) -> None:
        self.debouncer.cancel()

    def test_trigger_arms_and_flush_runs_once(self) -> None:
        self.assertEqual(self.debouncer.state, IDLE)
        self.debouncer.trigger()
        self.debouncer.trigger()
        self.debouncer.trigger()
        self.assertEqual(self.debouncer.state, ARMED)

        self.assertTrue(self.debouncer.flush_now())
        self.assertEqual(self.calls, [FLUSHING])
        self.assertEqual(self.debouncer.state, IDLE)

    def test_flush_when_idle_is_a_no_op(self) -> None:
        self.assertFalse(self.debouncer.flush_now())
        self.assertEqual(self.calls, [])

    def test_trigger_during_flush_rearms(self) -> None:
        def callback() -> None:
            self.calls.append("flush")
            debouncer.trigger()

        debouncer = Debouncer(callback, interval=60)
        debouncer.trigger()
        debouncer.flush_now()
        self.assertEqual(debouncer.state, ARMED)
        debouncer.flush_now()
        self.assertEqual(self.calls, ["flush", "flush"])
        debouncer.cancel()
        self.assertEqual(debouncer.state, IDLE)

    def test_cancel_drops_armed_flush(self) -> None:
        self.debouncer.trigger()
        self.debouncer.cancel()
        self.assertEqual(self.debouncer.state, IDLE)
        self.assertFalse(self.debouncer.flush_now())

    def test_callback_failure_returns_to_idle(self) -> None:
        def boom() -> None:
            raise RuntimeError("boom")

        debouncer = Debouncer(boom, interval=60)
        debouncer.trigger()
        self.assertTrue(debouncer.flush_now())
        self.assertEqual(debouncer.state, IDLE)


class ChangeAggregatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.batches: List[List[Node]] = []
        self.aggregator = ChangeAggregator(self.batches.append, interval=60)
        self.folder = Node(NodeKind.CONTAINER, name="a", path="a")

    def tearDown(self) -> None:
        self.aggregator.debouncer.cancel()

    def test_same_container_coalesces(self) -> None:
        for _ in range(5):
            self.aggregator.record_change(self.folder)
        self.assertEqual(len(self.aggregator), 1)

    def test_identity_not_equality(self) -> None:
        twin = Node(NodeKind.CONTAINER, name="a", path="a")
        self.aggregator.record_change(self.folder)
        self.aggregator.record_change(twin)
        self.assertEqual(len(self.aggregator), 2)

    def test_flush_drains(self) -> None:
        self.aggregator.record_change(self.folder)
        drained = self.aggregator.flush()
        self.assertEqual(drained, [self.folder])
        self.assertEqual(len(self.aggregator), 0)
        self.assertEqual(self.aggregator.flush(), [])

    def test_debounced_flush_hands_batch_over(self) -> None:
        other = Node(NodeKind.CONTAINER, name="b", path="b")
        self.aggregator.record_change(self.folder)
        self.aggregator.record_change(other)
        self.aggregator.debouncer.flush_now()
        self.assertEqual(len(self.batches), 1)
        self.assertEqual(set(self.batches[0]), {self.folder, other})
        self.assertEqual(len(self.aggregator), 0)


class EventBusTests(unittest.TestCase):
    def test_failing_handler_is_isolated(self) -> None:
        bus = EventBus()
        seen: List[str] = []

        def broken(value: str) -> None:
            raise ValueError(value)

        bus.on("create", broken)
        bus.on("create", seen.append)
        bus.emit("create", "x")
        self.assertEqual(seen, ["x"])

    def test_off_unsubscribes(self) -> None:
        bus = EventBus()
        seen: List[str] = []
        ref = bus.on("modify", seen.append)
        self.assertEqual(bus.handler_count("modify"), 1)
        bus.off(ref)
        bus.emit("modify", "y")
        self.assertEqual(seen, [])
        self.assertEqual(bus.handler_count("modify"), 0)


if __name__ == "__main__":
    unittest.main()
