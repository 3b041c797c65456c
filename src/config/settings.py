"""
Application Settings - Pydantic Settings for configuration management.

Supports environment variables and .env file loading.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import BeforeValidator, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_to_lowercase(v: str) -> str:
    """Normalize string to lowercase."""
    if isinstance(v, str):
        return v.lower()
    return v


class Neo4jSettings(BaseSettings):
    """Neo4j connection settings for the service under test."""

    model_config = SettingsConfigDict(env_prefix="NEO4J_")

    scheme: str = Field(default="bolt", description="URI scheme used when only a port is given")
    host: str = Field(default="127.0.0.1", description="Host used when only a port is given")
    username: str = Field(default="neo4j", description="Neo4j username")
    password: SecretStr = Field(default=SecretStr("password"), description="Neo4j password")
    database: str = Field(default="neo4j", description="Neo4j database name")
    connection_timeout: float = Field(default=10.0, gt=0, description="Connect timeout in seconds")


class BenchmarkSettings(BaseSettings):
    """Scaling benchmark settings."""

    model_config = SettingsConfigDict(env_prefix="BENCHMARK_")

    concurrency_levels: list[int] = Field(
        default=[1, 2, 4, 5, 8, 10],
        description="Ascending worker counts measured for every workload",
    )
    max_workers: int = Field(default=10, ge=1, description="Connection slots opened at startup")
    collection: str = Field(default="BenchmarkDoc", description="Node label used as the collection")
    seed_batch_size: int = Field(
        default=1000, ge=1, description="Documents per write when seeding query workloads"
    )
    drain_mode: Annotated[
        Literal["designated", "per_worker"],
        BeforeValidator(normalize_to_lowercase),
    ] = Field(
        default="designated",
        description="'designated' acknowledges once on slot 0 after the join, "
                    "'per_worker' makes every worker acknowledge its own slot",
    )
    workloads: list[str] = Field(
        default_factory=list, description="Workload names to run (empty runs the default suite)"
    )
    output_path: str | None = Field(default=None, description="Optional JSON Lines copy of the report")


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_")

    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format (json for machines, console for operators)"
    )


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )

    neo4j: Neo4jSettings = Field(default_factory=Neo4jSettings)
    benchmark: BenchmarkSettings = Field(default_factory=BenchmarkSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
