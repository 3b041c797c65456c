"""
Concurrency Driver.

Measures one workload at one concurrency level: reset (untimed), fan out
exactly N workers, join all of them, drain, stop the clock.
"""

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum

import structlog

from src.benchmark.workload import AnyWorkload, BlockingWorkload

logger = structlog.get_logger(__name__)

# Floor for an elapsed time the clock could not resolve
MIN_ELAPSED_SECONDS = 1e-9


class DrainMode(str, Enum):
    """Where the post-run acknowledgment is collected."""

    DESIGNATED = "designated"  # once, on worker 0's connection, after the join
    PER_WORKER = "per_worker"  # every worker on its own connection


class WorkloadResetError(Exception):
    """Raised when a workload cannot establish its precondition state."""

    def __init__(self, workload: str, concurrency_level: int):
        super().__init__(f"Reset of workload {workload!r} failed before level {concurrency_level}")
        self.workload = workload
        self.concurrency_level = concurrency_level


class WorkloadExecutionError(Exception):
    """Raised once every worker has been joined and at least one of them failed."""

    def __init__(
        self,
        workload: str,
        concurrency_level: int,
        worker_index: int,
        failed_workers: list[int],
    ):
        super().__init__(
            f"Workload {workload!r} failed at concurrency {concurrency_level} "
            f"(workers {failed_workers})"
        )
        self.workload = workload
        self.concurrency_level = concurrency_level
        self.worker_index = worker_index
        self.failed_workers = failed_workers


@dataclass(frozen=True)
class RunMeasurement:
    """Timing of one workload at one concurrency level."""

    concurrency_level: int
    elapsed_seconds: float
    ops_per_second: float
    speedup: float | None = None

    @classmethod
    def from_elapsed(
        cls,
        concurrency_level: int,
        elapsed_seconds: float,
        total_iterations: int,
    ) -> "RunMeasurement":
        elapsed_seconds = max(elapsed_seconds, MIN_ELAPSED_SECONDS)
        return cls(
            concurrency_level=concurrency_level,
            elapsed_seconds=elapsed_seconds,
            ops_per_second=total_iterations / elapsed_seconds,
        )

    def with_baseline(self, baseline_elapsed: float) -> "RunMeasurement":
        """Copy with the speedup against the baseline run filled in."""
        return replace(self, speedup=baseline_elapsed / self.elapsed_seconds)

    def to_dict(self) -> dict[str, float]:
        return {
            "time": self.elapsed_seconds,
            "ops_per_sec": self.ops_per_second,
            "speedup": self.speedup,
        }


class ConcurrencyDriver:
    """
    Runs a workload with a fresh batch of N workers per call.

    Coroutine workloads get one asyncio task per worker; blocking workloads
    get a thread pool of exactly N threads that is shut down before
    ``measure`` returns. Nothing beyond the join barrier synchronizes workers.
    """

    def __init__(self, drain_mode: DrainMode | str = DrainMode.DESIGNATED) -> None:
        self.drain_mode = DrainMode(drain_mode)

    async def measure(
        self,
        workload: AnyWorkload,
        concurrency_level: int,
        total_iterations: int,
    ) -> RunMeasurement:
        """
        Measure ``workload`` at ``concurrency_level``.

        Returns:
            Measurement without speedup; the caller relates it to the baseline.

        Raises:
            WorkloadResetError: reset failed, no worker was started
            WorkloadExecutionError: a worker failed, all workers were joined
        """
        if concurrency_level < 1:
            raise ValueError("concurrency_level must be positive")

        if isinstance(workload, BlockingWorkload):
            return await self._measure_blocking(workload, concurrency_level, total_iterations)

        try:
            await workload.reset()
        except Exception as e:
            logger.error("Workload reset failed", workload=workload.name, error=str(e))
            raise WorkloadResetError(workload.name, concurrency_level) from e

        per_worker = self.drain_mode is DrainMode.PER_WORKER

        async def worker(index: int) -> None:
            await workload.execute(index, concurrency_level)
            if per_worker:
                await workload.drain(index)

        start = time.perf_counter()
        tasks = [asyncio.create_task(worker(i)) for i in range(concurrency_level)]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        self._raise_for_failures(workload.name, concurrency_level, outcomes)
        if not per_worker:
            try:
                await workload.drain(0)
            except Exception as e:
                self._raise_drain_failure(workload.name, concurrency_level, e)
        elapsed = time.perf_counter() - start

        return RunMeasurement.from_elapsed(concurrency_level, elapsed, total_iterations)

    async def _measure_blocking(
        self,
        workload: BlockingWorkload,
        concurrency_level: int,
        total_iterations: int,
    ) -> RunMeasurement:
        try:
            await asyncio.to_thread(workload.reset)
        except Exception as e:
            logger.error("Workload reset failed", workload=workload.name, error=str(e))
            raise WorkloadResetError(workload.name, concurrency_level) from e

        per_worker = self.drain_mode is DrainMode.PER_WORKER

        def worker(index: int) -> None:
            workload.execute(index, concurrency_level)
            if per_worker:
                workload.drain(index)

        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(
            max_workers=concurrency_level,
            thread_name_prefix=f"bench-{concurrency_level}",
        ) as executor:
            start = time.perf_counter()
            futures = [loop.run_in_executor(executor, worker, i) for i in range(concurrency_level)]
            outcomes = await asyncio.gather(*futures, return_exceptions=True)
            self._raise_for_failures(workload.name, concurrency_level, outcomes)
            if not per_worker:
                try:
                    await loop.run_in_executor(executor, workload.drain, 0)
                except Exception as e:
                    self._raise_drain_failure(workload.name, concurrency_level, e)
            elapsed = time.perf_counter() - start

        return RunMeasurement.from_elapsed(concurrency_level, elapsed, total_iterations)

    @staticmethod
    def _raise_for_failures(workload: str, concurrency_level: int, outcomes: list) -> None:
        failed = [
            (index, outcome)
            for index, outcome in enumerate(outcomes)
            if isinstance(outcome, BaseException)
        ]
        if not failed:
            return

        for index, error in failed:
            logger.error(
                "Worker failed",
                workload=workload,
                concurrency=concurrency_level,
                worker=index,
                error=repr(error),
            )

        first_index, first_error = failed[0]
        raise WorkloadExecutionError(
            workload,
            concurrency_level,
            worker_index=first_index,
            failed_workers=[index for index, _ in failed],
        ) from first_error

    @staticmethod
    def _raise_drain_failure(workload: str, concurrency_level: int, error: Exception) -> None:
        """Report an error surfaced by the post-join acknowledgment as worker 0's failure."""
        logger.error(
            "Drain failed",
            workload=workload,
            concurrency=concurrency_level,
            worker=0,
            error=repr(error),
        )
        raise WorkloadExecutionError(
            workload,
            concurrency_level,
            worker_index=0,
            failed_workers=[0],
        ) from error
