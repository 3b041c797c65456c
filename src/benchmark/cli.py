"""
Command Line Entry Point.

    python -m src.benchmark <port|host:port|uri> <iterations> [options]

Writes one JSON document per workload to stdout once every workload has been
measured. Banners and logs go to stderr.
"""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from src.benchmark.driver import ConcurrencyDriver, WorkloadExecutionError, WorkloadResetError
from src.benchmark.report import FinalReport, ReportAggregator, validate_concurrency_levels
from src.benchmark.workloads.catalog import DEFAULT_SUITE, build_registry, catalog_names
from src.config.settings import Settings, get_settings
from src.graph.connection import ServiceConnectionError
from src.graph.pool import ConnectionPool, resolve_uri
from src.observability.logging import configure_logging

logger = structlog.get_logger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser reporting usage errors with exit code 1."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return number


def _levels(value: str) -> list[int]:
    return [_positive_int(item.strip()) for item in value.split(",") if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="scaling-bench",
        description="Measure database throughput and speedup across concurrency levels",
    )
    parser.add_argument("endpoint", nargs="?", help="Service port, host:port or URI")
    parser.add_argument("iterations", nargs="?", type=_positive_int, help="Units of work per run")
    parser.add_argument(
        "--levels",
        type=_levels,
        help="Comma-separated ascending concurrency levels (default: settings)",
    )
    parser.add_argument(
        "--workload",
        action="append",
        dest="workloads",
        metavar="NAME",
        help="Run only this workload (repeatable, default: the standard suite)",
    )
    parser.add_argument(
        "--drain-mode",
        choices=["designated", "per_worker"],
        help="Where to wait for write acknowledgments after the timed body",
    )
    parser.add_argument("--output", help="Also write the JSON Lines report to this file")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: settings)",
    )
    parser.add_argument(
        "--list", action="store_true", help="List known workloads and exit"
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.list and (args.endpoint is None or args.iterations is None):
        parser.error("expected 2 arguments: endpoint iterations")
    return args


def _print_banner(name: str) -> None:
    print(f"########## {name} ##########", file=sys.stderr, flush=True)


async def run_benchmark(
    settings: Settings,
    endpoint: str,
    iterations: int,
    levels: list[int],
    selection: list[str] | None,
    drain_mode: str,
) -> FinalReport:
    """Connect every slot, run the registry, close the pool."""
    uri = resolve_uri(endpoint, settings.neo4j)
    bench = settings.benchmark

    async with ConnectionPool(uri, bench.max_workers, settings.neo4j) as pool:
        registry = build_registry(
            pool,
            iterations=iterations,
            collection=bench.collection,
            seed_batch_size=bench.seed_batch_size,
            selection=selection,
        )
        aggregator = ReportAggregator(
            driver=ConcurrencyDriver(drain_mode=drain_mode),
            on_workload_start=_print_banner,
        )
        return await aggregator.run_all(registry, levels, iterations)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    bench = settings.benchmark

    configure_logging(
        level=args.log_level or settings.log_level,
        format=settings.observability.log_format,
    )

    if args.list:
        for name in catalog_names():
            marker = "*" if name in DEFAULT_SUITE else " "
            print(f"{marker} {name}")
        return 0

    parser = build_parser()
    levels = args.levels or bench.concurrency_levels
    try:
        levels = list(validate_concurrency_levels(levels, max_workers=bench.max_workers))
    except ValueError as e:
        parser.error(str(e))

    selection = args.workloads or bench.workloads or None
    unknown = [name for name in selection or [] if name not in catalog_names()]
    if unknown:
        parser.error(f"unknown workload(s): {', '.join(unknown)}")

    try:
        report = asyncio.run(
            run_benchmark(
                settings,
                endpoint=args.endpoint,
                iterations=args.iterations,
                levels=levels,
                selection=selection,
                drain_mode=args.drain_mode or bench.drain_mode,
            )
        )
    except ServiceConnectionError as e:
        print(f"couldn't connect : {e}", file=sys.stderr)
        return 1
    except (WorkloadResetError, WorkloadExecutionError) as e:
        logger.error("Benchmark aborted", error=str(e), cause=repr(e.__cause__))
        return 1

    report.write(sys.stdout)

    output_path = args.output or bench.output_path
    if output_path:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(report.to_json_lines(), encoding="utf-8")
        logger.info("Report written", path=str(path))

    return 0
