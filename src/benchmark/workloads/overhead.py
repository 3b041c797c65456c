"""Harness overhead: reset and fan-out with no requests in the timed body."""

from src.benchmark.workload import DatabaseWorkload


class DoNothing(DatabaseWorkload):
    async def execute(self, worker_index: int, total_workers: int) -> None:
        return None
