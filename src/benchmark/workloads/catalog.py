"""
Workload Catalog.

Every database workload under its stable name, in registration order, plus
the default suite run when the operator selects nothing.
"""

from src.benchmark.registry import WorkloadRegistry
from src.benchmark.workloads import inserts, overhead, queries, updates
from src.graph.pool import ConnectionPool

DEFAULT_SUITE = (
    "insert.empty",
    "insert.empty_batched_2",
    "insert.empty_batched_10",
    "insert.int_id",
    "insert.int_id_upsert",
    "insert.just_num_indexed_before",
    "insert.just_num_indexed_after",
    "update.inc_no_index_upsert",
    "update.inc_with_index_upsert",
    "update.inc_no_index",
    "update.inc_with_index",
    "update.inc_no_index_query_on_secondary",
    "update.inc_with_index_query_on_secondary",
    "query.hundred_table_scans",
    "query.int_id_range",
    "query.int_id_find_one",
    "query.int_non_id_range",
    "query.int_non_id_find_one",
)

_CATALOG = (
    ("overhead.do_nothing", overhead.DoNothing, {}),
    ("insert.empty", inserts.EmptyInsert, {}),
    ("insert.empty_batched_2", inserts.EmptyBatchedInsert, {"batch_size": 2}),
    ("insert.empty_batched_10", inserts.EmptyBatchedInsert, {"batch_size": 10}),
    ("insert.empty_batched_100", inserts.EmptyBatchedInsert, {"batch_size": 100}),
    ("insert.empty_batched_1000", inserts.EmptyBatchedInsert, {"batch_size": 1000}),
    ("insert.just_id", inserts.JustIdInsert, {}),
    ("insert.int_id", inserts.IntIdInsert, {}),
    ("insert.int_id_upsert", inserts.IntIdUpsert, {}),
    ("insert.just_num", inserts.JustNumInsert, {}),
    ("insert.just_num_indexed_before", inserts.JustNumIndexedBefore, {}),
    ("insert.just_num_indexed_after", inserts.JustNumIndexedAfter, {}),
    ("insert.num_and_id", inserts.NumAndIdInsert, {}),
    ("update.inc_no_index_upsert", updates.IncNoIndexUpsert, {}),
    ("update.inc_with_index_upsert", updates.IncWithIndexUpsert, {}),
    ("update.inc_no_index", updates.IncNoIndex, {}),
    ("update.inc_with_index", updates.IncWithIndex, {}),
    ("update.inc_no_index_query_on_secondary", updates.IncNoIndexQueryOnSecondary, {}),
    ("update.inc_with_index_query_on_secondary", updates.IncWithIndexQueryOnSecondary, {}),
    ("query.empty", queries.EmptyQuery, {}),
    ("query.hundred_table_scans", queries.HundredTableScans, {}),
    ("query.int_id", queries.IntIdQuery, {}),
    ("query.int_id_range", queries.IntIdRange, {}),
    ("query.int_id_find_one", queries.IntIdFindOne, {}),
    ("query.int_non_id", queries.IntNonIdQuery, {}),
    ("query.int_non_id_range", queries.IntNonIdRange, {}),
    ("query.int_non_id_find_one", queries.IntNonIdFindOne, {}),
    ("query.regex_prefix_find_one", queries.RegexPrefixFindOne, {}),
    ("query.two_ints_both_good", queries.TwoIntsBothGood, {}),
    ("query.two_ints_first_good", queries.TwoIntsFirstGood, {}),
    ("query.two_ints_second_good", queries.TwoIntsSecondGood, {}),
    ("query.two_ints_both_bad", queries.TwoIntsBothBad, {}),
)


def catalog_names() -> list[str]:
    return [name for name, _, _ in _CATALOG]


def build_catalog(
    pool: ConnectionPool,
    iterations: int,
    collection: str,
    seed_batch_size: int = 1000,
) -> WorkloadRegistry:
    """Instantiate every known workload against ``pool``."""
    registry = WorkloadRegistry()
    for name, workload_cls, options in _CATALOG:
        registry.register(
            workload_cls(
                name,
                pool=pool,
                iterations=iterations,
                collection=collection,
                seed_batch_size=seed_batch_size,
                **options,
            )
        )
    return registry


def build_registry(
    pool: ConnectionPool,
    iterations: int,
    collection: str,
    seed_batch_size: int = 1000,
    selection: list[str] | None = None,
) -> WorkloadRegistry:
    """
    Registry for one run: the named workloads, or the default suite.

    Raises:
        UnknownWorkloadError: a selected name is not in the catalog
    """
    catalog = build_catalog(pool, iterations, collection, seed_batch_size)
    return catalog.select(selection or DEFAULT_SUITE)
