"""
Service Connection Module.

One independent Neo4j connection per benchmark worker slot. A collection is
modelled as a node label, a document as the property map of a node.

Writes are issued without waiting for their result; ``wait_for_ack`` consumes
the last pending result on the session so the server has applied everything
issued on this connection before it returns. Reads always fetch their records.
"""

import re
from typing import Any

import structlog
from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncResult, AsyncSession
from neo4j.exceptions import DriverError, Neo4jError

from src.config.settings import Neo4jSettings

logger = structlog.get_logger(__name__)


class ServiceConnectionError(Exception):
    """Raised when a connection to the service cannot be established."""

    def __init__(self, message: str, uri: str, slot: int | None = None):
        super().__init__(message)
        self.uri = uri
        self.slot = slot


def quote_name(name: str) -> str:
    """Backtick-quote a label or property key for use in Cypher."""
    return "`" + name.replace("`", "``") + "`"


def index_name(label: str, field: str) -> str:
    """Deterministic index name for a label/property pair."""
    return re.sub(r"\W", "_", f"{label}_{field}").lower()


def _match_clause(match: dict[str, Any] | None) -> tuple[str, dict[str, Any]]:
    """Build a WHERE clause with one equality per key."""
    if not match:
        return "", {}

    conditions = []
    params: dict[str, Any] = {}
    for position, (key, value) in enumerate(match.items()):
        conditions.append(f"n.{quote_name(key)} = $m{position}")
        params[f"m{position}"] = value
    return "WHERE " + " AND ".join(conditions), params


class ServiceConnection:
    """
    A single long-lived session against the service.

    Each instance owns its own driver limited to one pooled socket, so two
    slots never share a connection.
    """

    def __init__(self, uri: str, settings: Neo4jSettings, slot: int = 0) -> None:
        self.uri = uri
        self.slot = slot
        self._settings = settings
        self._driver: AsyncDriver | None = None
        self._session: AsyncSession | None = None
        self._pending: AsyncResult | None = None

    @property
    def connected(self) -> bool:
        return self._session is not None

    async def connect(self) -> None:
        """Open the driver, verify connectivity and start the session."""
        if self._session is not None:
            return

        try:
            self._driver = AsyncGraphDatabase.driver(
                self.uri,
                auth=(self._settings.username, self._settings.password.get_secret_value()),
                max_connection_pool_size=1,
                connection_timeout=self._settings.connection_timeout,
            )
            await self._driver.verify_connectivity()
        except (Neo4jError, DriverError, OSError, ValueError) as e:
            await self.close()
            raise ServiceConnectionError(str(e), uri=self.uri, slot=self.slot) from e

        self._session = self._driver.session(database=self._settings.database)
        logger.debug("Connection established", uri=self.uri, slot=self.slot)

    async def close(self) -> None:
        """Close the session and the driver."""
        self._pending = None
        if self._session is not None:
            await self._session.close()
            self._session = None
        if self._driver is not None:
            await self._driver.close()
            self._driver = None

    def _require_session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError(f"Connection slot {self.slot} is not connected")
        return self._session

    async def _submit(self, query: str, params: dict[str, Any] | None = None) -> None:
        """Issue a write and leave its result pending."""
        session = self._require_session()
        self._pending = await session.run(query, params or {})

    async def _execute(self, query: str, params: dict[str, Any] | None = None) -> None:
        """Issue a statement and wait until the server has applied it."""
        session = self._require_session()
        result = await session.run(query, params or {})
        await result.consume()
        self._pending = None

    async def _fetch(self, query: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        session = self._require_session()
        result = await session.run(query, params or {})
        rows = await result.data()
        self._pending = None
        return rows

    async def wait_for_ack(self) -> None:
        """Block until the last write issued on this connection is applied."""
        if self._pending is not None:
            pending, self._pending = self._pending, None
            await pending.consume()

    # =========================================================================
    # Collection Management
    # =========================================================================

    async def drop_collection(self, label: str) -> None:
        """Remove every constraint, index and node of the collection."""
        constraints = await self._fetch(
            "SHOW CONSTRAINTS YIELD name, labelsOrTypes "
            "WHERE $label IN labelsOrTypes "
            "RETURN name",
            {"label": label},
        )
        for row in constraints:
            await self._execute(f"DROP CONSTRAINT {quote_name(row['name'])} IF EXISTS")

        rows = await self._fetch(
            "SHOW INDEXES YIELD name, labelsOrTypes, owningConstraint "
            "WHERE $label IN labelsOrTypes AND owningConstraint IS NULL "
            "RETURN name",
            {"label": label},
        )
        for row in rows:
            await self._execute(f"DROP INDEX {quote_name(row['name'])} IF EXISTS")

        await self._execute(f"MATCH (n:{quote_name(label)}) DETACH DELETE n")

    async def ensure_index(self, label: str, field: str) -> None:
        """Create a property index unless it already exists."""
        await self._submit(
            f"CREATE INDEX {quote_name(index_name(label, field))} IF NOT EXISTS "
            f"FOR (n:{quote_name(label)}) ON (n.{quote_name(field)})"
        )

    async def ensure_unique(self, label: str, field: str) -> None:
        """Create a uniqueness constraint (and its backing index) unless it exists."""
        await self._submit(
            f"CREATE CONSTRAINT {quote_name(index_name(label, field) + '_unique')} IF NOT EXISTS "
            f"FOR (n:{quote_name(label)}) REQUIRE n.{quote_name(field)} IS UNIQUE"
        )

    async def await_indexes(self) -> None:
        """Block until every index has finished populating."""
        await self._execute("CALL db.awaitIndexes()")

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert(self, label: str, document: dict[str, Any] | None = None) -> None:
        """Create one document."""
        await self._submit(
            f"CREATE (n:{quote_name(label)}) SET n = $document",
            {"document": document or {}},
        )

    async def insert_many(self, label: str, documents: list[dict[str, Any]]) -> None:
        """Create a batch of documents in one round trip."""
        await self._submit(
            f"UNWIND $documents AS document CREATE (n:{quote_name(label)}) SET n = document",
            {"documents": documents},
        )

    async def update(
        self,
        label: str,
        match: dict[str, Any],
        inc: dict[str, int] | None = None,
        upsert: bool = False,
    ) -> None:
        """
        Update the first document matching ``match``.

        Args:
            label: Collection label
            match: Equality filter
            inc: Fields to increment (missing fields count as 0)
            upsert: Create the document from ``match`` when nothing matches
        """
        where, params = _match_clause(match)
        if upsert:
            keys = ", ".join(
                f"{quote_name(key)}: $m{position}" for position, key in enumerate(match)
            )
            head = f"MERGE (n:{quote_name(label)} {{{keys}}})"
        else:
            head = f"MATCH (n:{quote_name(label)}) {where} WITH n LIMIT 1"

        assignments = []
        for position, (key, by) in enumerate((inc or {}).items()):
            field = quote_name(key)
            assignments.append(f"n.{field} = coalesce(n.{field}, 0) + $inc{position}")
            params[f"inc{position}"] = by

        query = head + (" SET " + ", ".join(assignments) if assignments else "")
        await self._submit(query, params)

    # =========================================================================
    # Reads
    # =========================================================================

    async def find_one(self, label: str, match: dict[str, Any] | None = None) -> dict[str, Any] | None:
        """Return the first document matching ``match``, if any."""
        where, params = _match_clause(match)
        rows = await self._fetch(
            f"MATCH (n:{quote_name(label)}) {where} RETURN n LIMIT 1", params
        )
        return rows[0]["n"] if rows else None

    async def find_one_matching(self, label: str, field: str, pattern: str) -> dict[str, Any] | None:
        """Return the first document whose ``field`` matches a regular expression."""
        rows = await self._fetch(
            f"MATCH (n:{quote_name(label)}) WHERE n.{quote_name(field)} =~ $pattern "
            f"RETURN n LIMIT 1",
            {"pattern": pattern},
        )
        return rows[0]["n"] if rows else None

    async def find(
        self,
        label: str,
        match: dict[str, Any] | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return documents matching ``match``, paged by ``skip``/``limit``."""
        where, params = _match_clause(match)
        query = f"MATCH (n:{quote_name(label)}) {where} RETURN n SKIP $skip"
        params["skip"] = skip
        if limit is not None:
            query += " LIMIT $limit"
            params["limit"] = limit
        rows = await self._fetch(query, params)
        return [row["n"] for row in rows]

    async def find_range(self, label: str, field: str, lower: Any, upper: Any) -> list[dict[str, Any]]:
        """Return documents with ``lower <= field < upper``."""
        name = quote_name(field)
        rows = await self._fetch(
            f"MATCH (n:{quote_name(label)}) WHERE n.{name} >= $lower AND n.{name} < $upper RETURN n",
            {"lower": lower, "upper": upper},
        )
        return [row["n"] for row in rows]

    async def ping(self) -> None:
        """Round trip a trivial statement."""
        await self._execute("RETURN 1")
