"""
Connection Pool Module.

Fixed-size set of service connections, one per worker slot. All slots are
established once before any workload runs and reused for the whole process.
"""

from collections.abc import Iterator
from typing import Any

import structlog

from src.config.settings import Neo4jSettings, get_settings
from src.graph.connection import ServiceConnection, ServiceConnectionError

logger = structlog.get_logger(__name__)


def resolve_uri(endpoint: str, settings: Neo4jSettings) -> str:
    """
    Turn the endpoint given on the command line into a driver URI.

    Accepts a bare port, ``host:port`` or a full URI.
    """
    endpoint = endpoint.strip()
    if "://" in endpoint:
        return endpoint
    if endpoint.isdigit():
        return f"{settings.scheme}://{settings.host}:{endpoint}"
    return f"{settings.scheme}://{endpoint}"


class ConnectionPool:
    """
    Worker-slot indexed connections.

    Slot ``i`` belongs to worker ``i`` for the duration of a timed run, so
    workers never contend for a connection. Slot 0 doubles as the completion
    connection used for resets and the post-join acknowledgment.
    """

    def __init__(
        self,
        uri: str,
        size: int,
        settings: Neo4jSettings | None = None,
    ) -> None:
        if size < 1:
            raise ValueError("Connection pool needs at least one slot")

        self.uri = uri
        self._settings = settings or get_settings().neo4j
        self._connections = [
            ServiceConnection(uri, self._settings, slot=slot) for slot in range(size)
        ]

    def __len__(self) -> int:
        return len(self._connections)

    def __getitem__(self, slot: int) -> ServiceConnection:
        return self._connections[slot]

    def __iter__(self) -> Iterator[ServiceConnection]:
        return iter(self._connections)

    @property
    def completion(self) -> ServiceConnection:
        """Connection used for resets and the drain step."""
        return self._connections[0]

    async def connect(self) -> None:
        """Establish every slot; on the first failure close what was opened."""
        for connection in self._connections:
            try:
                await connection.connect()
            except ServiceConnectionError:
                logger.error("Connection failed", uri=self.uri, slot=connection.slot)
                await self.close()
                raise

        logger.info("Connected to service", uri=self.uri, slots=len(self._connections))

    async def close(self) -> None:
        for connection in self._connections:
            await connection.close()

    async def __aenter__(self) -> "ConnectionPool":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
