"""
Workload Registry.

Ordered collection of workloads, built once at startup and iterated in
registration order.
"""

from collections.abc import Iterable, Iterator

from src.benchmark.workload import AnyWorkload


class UnknownWorkloadError(ValueError):
    """Raised when a selection names workloads that were never registered."""

    def __init__(self, names: list[str]):
        super().__init__(f"Unknown workload(s): {', '.join(names)}")
        self.names = names


class WorkloadRegistry:
    """Registration-ordered list of workloads."""

    def __init__(self, workloads: Iterable[AnyWorkload] = ()) -> None:
        self._workloads: list[AnyWorkload] = []
        for workload in workloads:
            self.register(workload)

    def register(self, workload: AnyWorkload) -> AnyWorkload:
        if not workload.name:
            raise ValueError("Workloads must have a non-empty name")
        self._workloads.append(workload)
        return workload

    def __iter__(self) -> Iterator[AnyWorkload]:
        return iter(self._workloads)

    def __len__(self) -> int:
        return len(self._workloads)

    def names(self) -> list[str]:
        return [workload.name for workload in self._workloads]

    def select(self, names: Iterable[str]) -> "WorkloadRegistry":
        """
        Sub-registry holding the named workloads.

        Registration order is kept regardless of the order of ``names``.
        """
        wanted = list(dict.fromkeys(names))
        unknown = [name for name in wanted if name not in set(self.names())]
        if unknown:
            raise UnknownWorkloadError(unknown)
        return WorkloadRegistry(w for w in self._workloads if w.name in wanted)
