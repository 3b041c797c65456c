"""
Pytest Configuration and Shared Fixtures.

This module provides shared fixtures for testing the scaling benchmark.
"""

import logging
from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import structlog

from src.config.settings import Settings, get_settings
from tests.helpers import RecordingPool, RecordingWorkload


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Generator[Settings, None, None]:
    """Provide test settings with mock values."""
    with patch.dict(
        "os.environ",
        {
            "NEO4J_HOST": "db.test",
            "NEO4J_USERNAME": "neo4j",
            "NEO4J_PASSWORD": "password123",
            "BENCHMARK_MAX_WORKERS": "4",
            "BENCHMARK_CONCURRENCY_LEVELS": "[1, 2, 4]",
        },
    ):
        get_settings.cache_clear()
        yield get_settings()
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    """Undo configure_logging so handlers never outlive a captured stream."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


# =============================================================================
# Harness Workloads
# =============================================================================


@pytest.fixture
def recording_workload() -> RecordingWorkload:
    return RecordingWorkload()


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def recording_pool() -> RecordingPool:
    return RecordingPool()


@pytest.fixture
def mock_neo4j() -> Generator[dict[str, MagicMock], None, None]:
    """Patch the Neo4j driver factory; every driver shares one mock session."""
    with patch("src.graph.connection.AsyncGraphDatabase") as mock_db:
        mock_result = MagicMock()
        mock_result.consume = AsyncMock()
        mock_result.data = AsyncMock(return_value=[])

        mock_session = MagicMock()
        mock_session.run = AsyncMock(return_value=mock_result)
        mock_session.close = AsyncMock()

        mock_driver = MagicMock()
        mock_driver.verify_connectivity = AsyncMock()
        mock_driver.close = AsyncMock()
        mock_driver.session.return_value = mock_session
        mock_db.driver.return_value = mock_driver

        yield {
            "db": mock_db,
            "driver": mock_driver,
            "session": mock_session,
            "result": mock_result,
        }
