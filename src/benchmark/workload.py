"""
Workload Contract.

A workload is a named, resettable unit of work that can be split across any
number of symmetric workers.
"""

from abc import ABC, abstractmethod

from src.graph.pool import ConnectionPool


def worker_share(total_units: int, total_workers: int) -> int:
    """Units owned by one worker. The remainder of the division is dropped."""
    if total_workers < 1:
        raise ValueError("total_workers must be positive")
    return max(total_units, 0) // total_workers


class Workload(ABC):
    """
    Coroutine workload, run as one asyncio task per worker.

    ``reset`` must leave the service in the workload's precondition state and
    must not return before the service has acknowledged it. ``execute`` does
    worker ``worker_index``'s share of the work out of ``total_workers``.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    async def reset(self) -> None:
        """Restore the precondition state before a timed run."""
        pass

    @abstractmethod
    async def execute(self, worker_index: int, total_workers: int) -> None:
        """Do this worker's share of the work."""
        pass

    async def drain(self, worker_index: int) -> None:
        """Wait for outstanding acknowledgments issued by ``worker_index``."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class BlockingWorkload(ABC):
    """
    Blocking workload, run with one OS thread per worker.

    Same contract as :class:`Workload` with synchronous methods.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    def reset(self) -> None:
        pass

    @abstractmethod
    def execute(self, worker_index: int, total_workers: int) -> None:
        pass

    def drain(self, worker_index: int) -> None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


AnyWorkload = Workload | BlockingWorkload


class DatabaseWorkload(Workload):
    """
    Workload issuing requests against the service through the pool.

    Worker ``t`` only ever talks to ``pool[t]``; resets go through the
    completion connection.
    """

    def __init__(
        self,
        name: str,
        pool: ConnectionPool,
        iterations: int,
        collection: str,
        seed_batch_size: int = 1000,
    ) -> None:
        super().__init__(name)
        self.pool = pool
        self.iterations = iterations
        self.collection = collection
        self.seed_batch_size = seed_batch_size

    def per_worker(self, total_workers: int) -> int:
        return worker_share(self.iterations, total_workers)

    def base(self, worker_index: int, total_workers: int) -> int:
        """First key owned by ``worker_index``."""
        return worker_index * self.per_worker(total_workers)

    async def clear(self) -> None:
        await self.pool.completion.drop_collection(self.collection)

    async def reset(self) -> None:
        # writes left pending by the previous level must land before the clear
        for connection in self.pool:
            await connection.wait_for_ack()

        completion = self.pool.completion
        await self.clear()
        await completion.ensure_unique(self.collection, "_id")
        await self.prepare()
        await completion.wait_for_ack()
        await completion.await_indexes()

    async def prepare(self) -> None:
        """Create supporting structures after the collection is cleared."""
        return None

    async def seed(self, make_document) -> None:
        """Insert ``iterations`` documents built by ``make_document(i)``."""
        connection = self.pool.completion
        for start in range(0, self.iterations, self.seed_batch_size):
            stop = min(start + self.seed_batch_size, self.iterations)
            await connection.insert_many(
                self.collection, [make_document(i) for i in range(start, stop)]
            )

    async def drain(self, worker_index: int) -> None:
        await self.pool[worker_index].wait_for_ack()
