"""
Test doubles shared across the unit tests.

Workloads with observable behaviour for the harness, and an in-memory pool
recording every call the database workloads make.
"""

import asyncio
import threading
import time
from collections.abc import Iterator
from typing import Any

from src.benchmark.workload import BlockingWorkload, Workload


class RecordingWorkload(Workload):
    """
    Workload that records every call and optionally sleeps per worker.

    ``events`` holds ("reset",) / ("start", i, n) / ("end", i, n) /
    ("drain", i) tuples in the order they happened.
    """

    def __init__(
        self,
        name: str = "recording",
        sleep_seconds: float = 0.0,
        fail_workers: tuple[int, ...] = (),
        fail_reset: bool = False,
    ) -> None:
        super().__init__(name)
        self.sleep_seconds = sleep_seconds
        self.fail_workers = fail_workers
        self.fail_reset = fail_reset
        self.events: list[tuple] = []
        self.running = 0
        self.finished = 0
        self.max_running = 0

    async def reset(self) -> None:
        assert self.running == 0, "reset overlapped a worker"
        self.finished = 0
        self.events.append(("reset",))
        if self.fail_reset:
            raise RuntimeError("service rejected reset")

    async def execute(self, worker_index: int, total_workers: int) -> None:
        self.events.append(("start", worker_index, total_workers))
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await asyncio.sleep(self.sleep_seconds)
            if worker_index in self.fail_workers:
                raise RuntimeError(f"worker {worker_index} failed")
        finally:
            self.running -= 1
            self.finished += 1
            self.events.append(("end", worker_index, total_workers))

    async def drain(self, worker_index: int) -> None:
        self.events.append(("drain", worker_index))


class UnitWorkload(Workload):
    """``iterations // n`` units per worker, each taking ``unit_seconds``."""

    def __init__(self, name: str, iterations: int, unit_seconds: float) -> None:
        super().__init__(name)
        self.iterations = iterations
        self.unit_seconds = unit_seconds
        self.units_done = 0

    async def reset(self) -> None:
        self.units_done = 0

    async def execute(self, worker_index: int, total_workers: int) -> None:
        for _ in range(self.iterations // total_workers):
            await asyncio.sleep(self.unit_seconds)
            self.units_done += 1


class ThreadedWorkload(BlockingWorkload):
    """Blocking workload tracking which threads ran it."""

    def __init__(
        self,
        name: str = "threaded",
        sleep_seconds: float = 0.0,
        fail_workers: tuple[int, ...] = (),
    ) -> None:
        super().__init__(name)
        self.sleep_seconds = sleep_seconds
        self.fail_workers = fail_workers
        self.lock = threading.Lock()
        self.thread_ids: set[int] = set()
        self.finished = 0
        self.resets = 0
        self.drained: list[int] = []

    def reset(self) -> None:
        self.resets += 1
        with self.lock:
            self.thread_ids.clear()
            self.finished = 0

    def execute(self, worker_index: int, total_workers: int) -> None:
        try:
            time.sleep(self.sleep_seconds)
            with self.lock:
                self.thread_ids.add(threading.get_ident())
            if worker_index in self.fail_workers:
                raise ValueError(f"worker {worker_index} failed")
        finally:
            with self.lock:
                self.finished += 1

    def drain(self, worker_index: int) -> None:
        self.drained.append(worker_index)


class RecordingConnection:
    """In-memory stand-in for ServiceConnection recording every call."""

    def __init__(self, slot: int) -> None:
        self.slot = slot
        self.calls: list[tuple[str, tuple, dict]] = []
        self.find_one_result: dict[str, Any] | None = None

    def _record(self, method: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((method, args, kwargs))

    def methods(self) -> list[str]:
        return [method for method, _, _ in self.calls]

    async def drop_collection(self, label: str) -> None:
        self._record("drop_collection", label)

    async def ensure_index(self, label: str, field: str) -> None:
        self._record("ensure_index", label, field)

    async def ensure_unique(self, label: str, field: str) -> None:
        self._record("ensure_unique", label, field)

    async def await_indexes(self) -> None:
        self._record("await_indexes")

    async def insert(self, label: str, document: dict[str, Any] | None = None) -> None:
        self._record("insert", label, document)

    async def insert_many(self, label: str, documents: list[dict[str, Any]]) -> None:
        self._record("insert_many", label, documents)

    async def update(self, label, match, inc=None, upsert=False) -> None:
        self._record("update", label, match, inc=inc, upsert=upsert)

    async def find_one(self, label, match=None):
        self._record("find_one", label, match)
        return self.find_one_result

    async def find_one_matching(self, label, field, pattern):
        self._record("find_one_matching", label, field, pattern)
        return None

    async def find(self, label, match=None, skip=0, limit=None):
        self._record("find", label, match, skip=skip, limit=limit)
        return []

    async def find_range(self, label, field, lower, upper):
        self._record("find_range", label, field, lower, upper)
        return []

    async def wait_for_ack(self) -> None:
        self._record("wait_for_ack")


class RecordingPool:
    """Slot-indexed RecordingConnections with the ConnectionPool surface."""

    def __init__(self, size: int = 10) -> None:
        self._connections = [RecordingConnection(slot) for slot in range(size)]

    def __len__(self) -> int:
        return len(self._connections)

    def __getitem__(self, slot: int) -> RecordingConnection:
        return self._connections[slot]

    def __iter__(self) -> Iterator[RecordingConnection]:
        return iter(self._connections)

    @property
    def completion(self) -> RecordingConnection:
        return self._connections[0]

