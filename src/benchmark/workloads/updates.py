"""
Update Workloads.

All workers increment the same 100 hot documents, ``iterations // n // 100``
times each, so these measure contention on shared documents.
"""

from src.benchmark.workload import DatabaseWorkload

HOT_DOCUMENTS = 100


class IncrementWorkload(DatabaseWorkload):
    """
    ``$inc``-style counter updates.

    Class attributes select the variant: whether missing documents are
    upserted, which fields are indexed, whether the hot documents are seeded
    during reset, and which field the update filters on.
    """

    upsert = False
    indexed_fields: tuple[str, ...] = ()
    seeded = True
    match_field = "_id"

    async def prepare(self) -> None:
        connection = self.pool.completion
        for field in self.indexed_fields:
            await connection.ensure_index(self.collection, field)

        if self.seeded:
            await connection.insert_many(
                self.collection,
                [self.hot_document(i) for i in range(HOT_DOCUMENTS)],
            )

    def hot_document(self, i: int) -> dict[str, int]:
        document = {"_id": i, "count": 0}
        if self.match_field == "i":
            document["i"] = i
        return document

    async def execute(self, worker_index: int, total_workers: int) -> None:
        connection = self.pool[worker_index]
        increments = self.iterations // total_workers // HOT_DOCUMENTS
        for i in range(HOT_DOCUMENTS):
            for _ in range(increments):
                await connection.update(
                    self.collection,
                    {self.match_field: i},
                    inc={"count": 1},
                    upsert=self.upsert,
                )


class IncNoIndexUpsert(IncrementWorkload):
    upsert = True
    seeded = False


class IncWithIndexUpsert(IncrementWorkload):
    upsert = True
    seeded = False
    indexed_fields = ("count",)


class IncNoIndex(IncrementWorkload):
    pass


class IncWithIndex(IncrementWorkload):
    indexed_fields = ("count",)


class IncNoIndexQueryOnSecondary(IncrementWorkload):
    indexed_fields = ("i",)
    match_field = "i"


class IncWithIndexQueryOnSecondary(IncrementWorkload):
    indexed_fields = ("count", "i")
    match_field = "i"
