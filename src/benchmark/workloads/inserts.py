"""
Insert Workloads.

Every worker writes ``iterations // n`` documents on its own connection.
Integer keys are partitioned so workers never write the same key.
"""

import uuid

from src.benchmark.workload import DatabaseWorkload


class EmptyInsert(DatabaseWorkload):
    """Empty documents, one request each."""

    async def execute(self, worker_index: int, total_workers: int) -> None:
        connection = self.pool[worker_index]
        for _ in range(self.per_worker(total_workers)):
            await connection.insert(self.collection)


class EmptyBatchedInsert(DatabaseWorkload):
    """Empty documents, ``batch_size`` per request."""

    def __init__(self, *args, batch_size: int, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.batch_size = batch_size

    async def execute(self, worker_index: int, total_workers: int) -> None:
        connection = self.pool[worker_index]
        batches = self.iterations // self.batch_size // total_workers
        for _ in range(batches):
            await connection.insert_many(self.collection, [{} for _ in range(self.batch_size)])


class JustIdInsert(DatabaseWorkload):
    """Documents carrying only a generated unique id."""

    async def execute(self, worker_index: int, total_workers: int) -> None:
        connection = self.pool[worker_index]
        for _ in range(self.per_worker(total_workers)):
            await connection.insert(self.collection, {"_id": uuid.uuid4().hex})


class IntIdInsert(DatabaseWorkload):
    async def execute(self, worker_index: int, total_workers: int) -> None:
        connection = self.pool[worker_index]
        base = self.base(worker_index, total_workers)
        for i in range(self.per_worker(total_workers)):
            await connection.insert(self.collection, {"_id": base + i})


class IntIdUpsert(DatabaseWorkload):
    """Same keys as :class:`IntIdInsert`, written through upserts."""

    async def execute(self, worker_index: int, total_workers: int) -> None:
        connection = self.pool[worker_index]
        base = self.base(worker_index, total_workers)
        for i in range(self.per_worker(total_workers)):
            await connection.update(self.collection, {"_id": base + i}, upsert=True)


class JustNumInsert(DatabaseWorkload):
    """Documents with a single numeric field ``x``."""

    index_before = False
    index_after = False

    async def execute(self, worker_index: int, total_workers: int) -> None:
        connection = self.pool[worker_index]
        if self.index_before:
            await connection.ensure_index(self.collection, "x")

        base = self.base(worker_index, total_workers)
        for i in range(self.per_worker(total_workers)):
            await connection.insert(self.collection, {"x": base + i})

        if self.index_after:
            await connection.ensure_index(self.collection, "x")

    async def drain(self, worker_index: int) -> None:
        await super().drain(worker_index)
        if self.index_before or self.index_after:
            await self.pool[worker_index].await_indexes()


class JustNumIndexedBefore(JustNumInsert):
    index_before = True


class JustNumIndexedAfter(JustNumInsert):
    index_after = True


class NumAndIdInsert(DatabaseWorkload):
    async def execute(self, worker_index: int, total_workers: int) -> None:
        connection = self.pool[worker_index]
        base = self.base(worker_index, total_workers)
        for i in range(self.per_worker(total_workers)):
            await connection.insert(self.collection, {"_id": uuid.uuid4().hex, "x": base + i})
