"""
Unit Tests for the Concurrency Driver.

Covers the reset/launch/join/drain sequence, the join barrier under
failure, and the measurement arithmetic.
"""

import math

import pytest

from src.benchmark.driver import (
    MIN_ELAPSED_SECONDS,
    ConcurrencyDriver,
    DrainMode,
    RunMeasurement,
    WorkloadExecutionError,
    WorkloadResetError,
)
from tests.helpers import RecordingWorkload, ThreadedWorkload, UnitWorkload


class FastFailWorkload(RecordingWorkload):
    """Worker 0 fails immediately while its siblings are still sleeping."""

    async def execute(self, worker_index: int, total_workers: int) -> None:
        if worker_index == 0:
            raise RuntimeError("insert rejected")
        await super().execute(worker_index, total_workers)


class RejectedAckWorkload(RecordingWorkload):
    """Every worker succeeds; the acknowledgment reports a rejected write."""

    async def drain(self, worker_index: int) -> None:
        await super().drain(worker_index)
        raise RuntimeError("write rejected on ack")


class RejectedAckThreadedWorkload(ThreadedWorkload):
    def drain(self, worker_index: int) -> None:
        super().drain(worker_index)
        raise RuntimeError("write rejected on ack")


# =============================================================================
# Measurement Arithmetic
# =============================================================================


class TestRunMeasurement:
    """Test RunMeasurement derivation."""

    def test_ops_per_second_from_elapsed(self) -> None:
        measurement = RunMeasurement.from_elapsed(4, 0.5, 1000)

        assert measurement.concurrency_level == 4
        assert measurement.elapsed_seconds == 0.5
        assert measurement.ops_per_second == 2000.0
        assert measurement.speedup is None

    def test_zero_elapsed_is_floored(self) -> None:
        measurement = RunMeasurement.from_elapsed(1, 0.0, 10)

        assert measurement.elapsed_seconds == MIN_ELAPSED_SECONDS
        assert math.isfinite(measurement.ops_per_second)
        assert measurement.ops_per_second == 10 / MIN_ELAPSED_SECONDS

    def test_with_baseline_returns_new_instance(self) -> None:
        measurement = RunMeasurement.from_elapsed(2, 0.25, 100)
        related = measurement.with_baseline(1.0)

        assert related.speedup == 4.0
        assert measurement.speedup is None
        assert related.elapsed_seconds == measurement.elapsed_seconds

    def test_to_dict_shape(self) -> None:
        measurement = RunMeasurement.from_elapsed(2, 0.5, 100).with_baseline(1.0)

        assert measurement.to_dict() == {"time": 0.5, "ops_per_sec": 200.0, "speedup": 2.0}


# =============================================================================
# Coroutine Workloads
# =============================================================================


class TestConcurrencyDriver:
    """Test ConcurrencyDriver.measure with coroutine workloads."""

    @pytest.mark.asyncio
    async def test_ops_per_second_invariant(self) -> None:
        workload = RecordingWorkload(sleep_seconds=0.01)

        measurement = await ConcurrencyDriver().measure(workload, 2, 500)

        assert measurement.concurrency_level == 2
        assert measurement.elapsed_seconds > 0
        assert measurement.ops_per_second == pytest.approx(500 / measurement.elapsed_seconds)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("level", [1, 2, 4, 5, 8, 10])
    async def test_join_barrier_is_total(self, level: int) -> None:
        workload = RecordingWorkload(sleep_seconds=0.01)

        await ConcurrencyDriver().measure(workload, level, 100)

        assert workload.finished == level
        assert workload.running == 0

    @pytest.mark.asyncio
    async def test_launches_exactly_n_distinct_workers(self) -> None:
        workload = RecordingWorkload(sleep_seconds=0.02)

        await ConcurrencyDriver().measure(workload, 5, 100)

        starts = [event for event in workload.events if event[0] == "start"]
        assert sorted(index for _, index, _ in starts) == [0, 1, 2, 3, 4]
        assert all(total == 5 for _, _, total in starts)
        assert workload.max_running == 5

    @pytest.mark.asyncio
    async def test_reset_once_before_any_worker(self, recording_workload: RecordingWorkload) -> None:
        await ConcurrencyDriver().measure(recording_workload, 3, 30)

        kinds = [event[0] for event in recording_workload.events]
        assert kinds.count("reset") == 1
        assert kinds[0] == "reset"

    @pytest.mark.asyncio
    async def test_degenerate_share_does_no_work(self) -> None:
        workload = UnitWorkload("tiny", iterations=3, unit_seconds=0.01)

        measurement = await ConcurrencyDriver().measure(workload, 4, 3)

        assert workload.units_done == 0
        assert measurement.ops_per_second == pytest.approx(3 / measurement.elapsed_seconds)

    @pytest.mark.asyncio
    async def test_invalid_level_rejected(self, recording_workload: RecordingWorkload) -> None:
        with pytest.raises(ValueError):
            await ConcurrencyDriver().measure(recording_workload, 0, 10)

        assert recording_workload.events == []

    # =========================================================================
    # Drain Step
    # =========================================================================

    @pytest.mark.asyncio
    async def test_designated_drain_after_join(self, recording_workload: RecordingWorkload) -> None:
        await ConcurrencyDriver().measure(recording_workload, 4, 40)

        events = recording_workload.events
        drains = [event for event in events if event[0] == "drain"]
        assert drains == [("drain", 0)]
        assert events[-1] == ("drain", 0)
        assert sum(1 for event in events if event[0] == "end") == 4

    @pytest.mark.asyncio
    async def test_per_worker_drain(self, recording_workload: RecordingWorkload) -> None:
        driver = ConcurrencyDriver(drain_mode="per_worker")
        assert driver.drain_mode is DrainMode.PER_WORKER

        await driver.measure(recording_workload, 3, 30)

        events = recording_workload.events
        drains = sorted(event[1] for event in events if event[0] == "drain")
        assert drains == [0, 1, 2]
        for index in range(3):
            assert events.index(("end", index, 3)) < events.index(("drain", index))

    # =========================================================================
    # Failures
    # =========================================================================

    @pytest.mark.asyncio
    async def test_reset_failure_starts_no_worker(self) -> None:
        workload = RecordingWorkload(fail_reset=True)

        with pytest.raises(WorkloadResetError) as exc_info:
            await ConcurrencyDriver().measure(workload, 2, 10)

        assert exc_info.value.workload == "recording"
        assert exc_info.value.concurrency_level == 2
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert [event[0] for event in workload.events] == ["reset"]

    @pytest.mark.asyncio
    async def test_worker_failure_joins_siblings_first(self) -> None:
        workload = FastFailWorkload(sleep_seconds=0.05)

        with pytest.raises(WorkloadExecutionError) as exc_info:
            await ConcurrencyDriver().measure(workload, 4, 40)

        assert workload.finished == 3
        assert workload.running == 0
        assert exc_info.value.worker_index == 0
        assert exc_info.value.failed_workers == [0]
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert not any(event[0] == "drain" for event in workload.events)

    @pytest.mark.asyncio
    async def test_lowest_failing_worker_is_reported(self) -> None:
        workload = RecordingWorkload(sleep_seconds=0.01, fail_workers=(3, 1))

        with pytest.raises(WorkloadExecutionError) as exc_info:
            await ConcurrencyDriver().measure(workload, 4, 40)

        assert exc_info.value.worker_index == 1
        assert exc_info.value.failed_workers == [1, 3]
        assert "worker 1 failed" in str(exc_info.value.__cause__)
        assert workload.finished == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("drain_mode", list(DrainMode))
    async def test_acknowledgment_failure_is_an_execution_error(self, drain_mode: DrainMode) -> None:
        workload = RejectedAckWorkload()

        with pytest.raises(WorkloadExecutionError) as exc_info:
            await ConcurrencyDriver(drain_mode=drain_mode).measure(workload, 2, 10)

        assert exc_info.value.worker_index == 0
        assert 0 in exc_info.value.failed_workers
        assert str(exc_info.value.__cause__) == "write rejected on ack"
        assert workload.finished == 2


# =============================================================================
# Blocking Workloads
# =============================================================================


class TestBlockingWorkloads:
    """Test ConcurrencyDriver.measure with thread-backed workloads."""

    @pytest.mark.asyncio
    async def test_runs_one_thread_per_worker(self) -> None:
        workload = ThreadedWorkload(sleep_seconds=0.05)

        measurement = await ConcurrencyDriver().measure(workload, 4, 400)

        assert workload.resets == 1
        assert workload.finished == 4
        assert len(workload.thread_ids) == 4
        assert workload.drained == [0]
        assert measurement.ops_per_second == pytest.approx(400 / measurement.elapsed_seconds)

    @pytest.mark.asyncio
    async def test_failure_after_all_threads_joined(self) -> None:
        workload = ThreadedWorkload(sleep_seconds=0.02, fail_workers=(2,))

        with pytest.raises(WorkloadExecutionError) as exc_info:
            await ConcurrencyDriver().measure(workload, 4, 40)

        assert workload.finished == 4
        assert exc_info.value.worker_index == 2
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert workload.drained == []

    @pytest.mark.asyncio
    async def test_per_worker_drain_on_threads(self) -> None:
        workload = ThreadedWorkload()

        await ConcurrencyDriver(drain_mode=DrainMode.PER_WORKER).measure(workload, 3, 30)

        assert sorted(workload.drained) == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_acknowledgment_failure_on_threads(self) -> None:
        workload = RejectedAckThreadedWorkload()

        with pytest.raises(WorkloadExecutionError) as exc_info:
            await ConcurrencyDriver().measure(workload, 3, 30)

        assert exc_info.value.worker_index == 0
        assert exc_info.value.failed_workers == [0]
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert workload.finished == 3
        assert workload.drained == [0]
