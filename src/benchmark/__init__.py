"""
Database Scaling Benchmark.

Measures throughput and speedup of database workloads as the number of
concurrent workers grows:
- Workload contract and registry
- Concurrency driver with an exception-safe join barrier
- Report aggregation relative to the single-worker baseline
"""

from src.benchmark.driver import (
    ConcurrencyDriver,
    DrainMode,
    RunMeasurement,
    WorkloadExecutionError,
    WorkloadResetError,
)
from src.benchmark.registry import UnknownWorkloadError, WorkloadRegistry
from src.benchmark.report import (
    FinalReport,
    ReportAggregator,
    WorkloadReport,
    validate_concurrency_levels,
)
from src.benchmark.workload import (
    BlockingWorkload,
    DatabaseWorkload,
    Workload,
    worker_share,
)

__all__ = [
    "Workload",
    "BlockingWorkload",
    "DatabaseWorkload",
    "worker_share",
    "WorkloadRegistry",
    "UnknownWorkloadError",
    "ConcurrencyDriver",
    "DrainMode",
    "RunMeasurement",
    "WorkloadResetError",
    "WorkloadExecutionError",
    "ReportAggregator",
    "WorkloadReport",
    "FinalReport",
    "validate_concurrency_levels",
]
