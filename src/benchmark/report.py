"""
Report Aggregation.

Runs every registered workload across the ascending concurrency levels and
relates each measurement to the lowest-level baseline.
"""

import json
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, TextIO

import structlog

from src.benchmark.driver import ConcurrencyDriver, RunMeasurement
from src.benchmark.registry import WorkloadRegistry
from src.observability.logging import LogContext

logger = structlog.get_logger(__name__)


def validate_concurrency_levels(
    levels: Iterable[int],
    max_workers: int | None = None,
) -> tuple[int, ...]:
    """
    Check that levels are non-empty, positive and strictly ascending.

    Raises:
        ValueError: on any violation, or when a level exceeds ``max_workers``
    """
    levels = tuple(levels)
    if not levels:
        raise ValueError("At least one concurrency level is required")
    if any(level < 1 for level in levels):
        raise ValueError(f"Concurrency levels must be positive: {list(levels)}")
    if any(later <= earlier for earlier, later in zip(levels, levels[1:])):
        raise ValueError(f"Concurrency levels must be strictly ascending: {list(levels)}")
    if max_workers is not None and levels[-1] > max_workers:
        raise ValueError(
            f"Concurrency level {levels[-1]} exceeds the {max_workers} available connection slots"
        )
    return levels


@dataclass(frozen=True)
class WorkloadReport:
    """All measurements of one workload, in ascending concurrency order."""

    name: str
    measurements: tuple[RunMeasurement, ...]

    @property
    def baseline(self) -> RunMeasurement:
        return self.measurements[0]

    def measurement(self, concurrency_level: int) -> RunMeasurement:
        for measurement in self.measurements:
            if measurement.concurrency_level == concurrency_level:
                return measurement
        raise KeyError(concurrency_level)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "results": {
                str(m.concurrency_level): m.to_dict() for m in self.measurements
            },
        }


@dataclass(frozen=True)
class FinalReport:
    """One report per registered workload, in registration order."""

    workloads: tuple[WorkloadReport, ...]

    def __len__(self) -> int:
        return len(self.workloads)

    def __iter__(self):
        return iter(self.workloads)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [workload.to_dict() for workload in self.workloads]

    def to_json_lines(self) -> str:
        """One self-contained JSON document per workload, one per line."""
        return "".join(json.dumps(document) + "\n" for document in self.to_dicts())

    def write(self, stream: TextIO) -> None:
        stream.write(self.to_json_lines())
        stream.flush()


class ReportAggregator:
    """
    Drives the registry through the concurrency driver.

    Levels run strictly one after another; each level resets the workload
    before its workers start.
    """

    def __init__(
        self,
        driver: ConcurrencyDriver | None = None,
        on_workload_start: Callable[[str], None] | None = None,
    ) -> None:
        self.driver = driver or ConcurrencyDriver()
        self.on_workload_start = on_workload_start

    async def run_workload(
        self,
        workload,
        concurrency_levels: Sequence[int],
        total_iterations: int,
    ) -> WorkloadReport:
        measurements: list[RunMeasurement] = []
        baseline_elapsed: float | None = None

        for level in concurrency_levels:
            with LogContext(workload=workload.name, concurrency=level):
                measurement = await self.driver.measure(workload, level, total_iterations)
                if baseline_elapsed is None:
                    baseline_elapsed = measurement.elapsed_seconds
                measurement = measurement.with_baseline(baseline_elapsed)
                measurements.append(measurement)

                logger.info(
                    "Level measured",
                    elapsed_s=round(measurement.elapsed_seconds, 6),
                    ops_per_sec=round(measurement.ops_per_second, 2),
                    speedup=round(measurement.speedup, 3),
                )

        return WorkloadReport(name=workload.name, measurements=tuple(measurements))

    async def run_all(
        self,
        registry: WorkloadRegistry,
        concurrency_levels: Iterable[int],
        total_iterations: int,
    ) -> FinalReport:
        """
        Measure every workload at every level.

        Any failure propagates immediately; no partial report is produced.
        """
        levels = validate_concurrency_levels(concurrency_levels)
        if total_iterations < 1:
            raise ValueError("total_iterations must be positive")

        reports: list[WorkloadReport] = []
        for workload in registry:
            logger.info("Starting workload", workload=workload.name, levels=list(levels))
            if self.on_workload_start:
                self.on_workload_start(workload.name)
            reports.append(await self.run_workload(workload, levels, total_iterations))

        logger.info("All workloads measured", workloads=len(reports))
        return FinalReport(workloads=tuple(reports))
