"""
Query Workloads.

Reset seeds ``iterations`` documents (untimed); workers then read their own
slice of the key space.
"""

from typing import Any

from src.benchmark.workload import DatabaseWorkload

PATTERN_COUNT = 100


class SeededQuery(DatabaseWorkload):
    """Base for workloads reading from a pre-populated collection."""

    indexed_fields: tuple[str, ...] = ()

    def make_document(self, i: int) -> dict[str, Any]:
        return {}

    async def prepare(self) -> None:
        for field in self.indexed_fields:
            await self.pool.completion.ensure_index(self.collection, field)
        await self.seed(self.make_document)


class ChunkScan(SeededQuery):
    """Each worker pages through its own ``skip``/``limit`` chunk."""

    async def execute(self, worker_index: int, total_workers: int) -> None:
        chunk = self.per_worker(total_workers)
        if chunk == 0:
            return
        await self.pool[worker_index].find(
            self.collection, skip=chunk * worker_index, limit=chunk
        )


class EmptyQuery(ChunkScan):
    pass


class IntIdQuery(ChunkScan):
    def make_document(self, i: int) -> dict[str, Any]:
        return {"_id": i}


class IntNonIdQuery(ChunkScan):
    indexed_fields = ("x",)

    def make_document(self, i: int) -> dict[str, Any]:
        return {"x": i}


class HundredTableScans(SeededQuery):
    """Point reads on a field no document has; each one scans the collection."""

    async def execute(self, worker_index: int, total_workers: int) -> None:
        connection = self.pool[worker_index]
        for i in range(PATTERN_COUNT // total_workers):
            await connection.find_one(self.collection, {"does_not_exist": i})


class RangeQuery(SeededQuery):
    """Each worker reads its ``[base, base + chunk)`` key range in one request."""

    field = "_id"

    def make_document(self, i: int) -> dict[str, Any]:
        return {self.field: i}

    async def execute(self, worker_index: int, total_workers: int) -> None:
        chunk = self.per_worker(total_workers)
        if chunk == 0:
            return
        await self.pool[worker_index].find_range(
            self.collection,
            self.field,
            chunk * worker_index,
            chunk * (worker_index + 1),
        )


class IntIdRange(RangeQuery):
    pass


class IntNonIdRange(RangeQuery):
    field = "x"
    indexed_fields = ("x",)


class FindOneQuery(SeededQuery):
    """One point read per owned key."""

    def lookup(self, i: int) -> dict[str, Any]:
        return self.make_document(i)

    async def execute(self, worker_index: int, total_workers: int) -> None:
        connection = self.pool[worker_index]
        base = self.base(worker_index, total_workers)
        for i in range(self.per_worker(total_workers)):
            await connection.find_one(self.collection, self.lookup(base + i))


class IntIdFindOne(FindOneQuery):
    def make_document(self, i: int) -> dict[str, Any]:
        return {"_id": i}


class IntNonIdFindOne(FindOneQuery):
    indexed_fields = ("x",)

    def make_document(self, i: int) -> dict[str, Any]:
        return {"x": i}


class TwoIntsBothGood(FindOneQuery):
    """Both fields are selective."""

    indexed_fields = ("x", "y")

    def make_document(self, i: int) -> dict[str, Any]:
        return {"x": i, "y": self.iterations - i}


class TwoIntsFirstGood(FindOneQuery):
    indexed_fields = ("x", "y")

    def make_document(self, i: int) -> dict[str, Any]:
        return {"x": i, "y": i % 13}


class TwoIntsSecondGood(FindOneQuery):
    indexed_fields = ("x", "y")

    def make_document(self, i: int) -> dict[str, Any]:
        return {"x": i % 13, "y": i}


class TwoIntsBothBad(FindOneQuery):
    """Neither field is selective; 503 and 509 are coprime."""

    indexed_fields = ("x", "y")

    def make_document(self, i: int) -> dict[str, Any]:
        return {"x": i % 503, "y": i % 509}


class RegexPrefixFindOne(SeededQuery):
    """Anchored prefix matches on a string field."""

    indexed_fields = ("x",)

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.patterns = [f"^{i + 1}.*" for i in range(PATTERN_COUNT)]

    def make_document(self, i: int) -> dict[str, Any]:
        return {"x": str(i)}

    async def execute(self, worker_index: int, total_workers: int) -> None:
        connection = self.pool[worker_index]
        rounds = self.iterations // total_workers // PATTERN_COUNT
        for _ in range(rounds):
            for pattern in self.patterns:
                await connection.find_one_matching(self.collection, "x", pattern)
