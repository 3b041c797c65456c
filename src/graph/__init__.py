"""
Service Module.

Neo4j-backed connections to the service being benchmarked.
"""

from src.graph.connection import (
    ServiceConnection,
    ServiceConnectionError,
    index_name,
    quote_name,
)
from src.graph.pool import ConnectionPool, resolve_uri

__all__ = [
    "ServiceConnection",
    "ServiceConnectionError",
    "ConnectionPool",
    "resolve_uri",
    "index_name",
    "quote_name",
]
