"""
Pydantic settings for cypherlink.

Uses pydantic-settings for environment variable validation and type coercion.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cypherlink.modules.query.options import CompilerOptions

# =============================================================================
# Environment Settings (from .env file)
# =============================================================================


class Neo4jSettings(BaseSettings):
    """Neo4j connection settings."""

    model_config = SettingsConfigDict(env_prefix="NEO4J_", env_file=".env", extra="ignore")

    uri: str = "bolt://localhost:7687"
    username: str = ""
    password: str = ""
    database: str = "neo4j"
    encrypted: bool = False

    # Connection pool settings
    max_connection_lifetime: int = 3600
    max_connection_pool_size: int = 50
    connection_acquisition_timeout: int = 60

    # Logging
    log_queries: bool = False

    # Existence constraints need an enterprise server
    enterprise: bool = False


class CompilerSettings(BaseSettings):
    """Query compiler switches."""

    model_config = SettingsConfigDict(env_prefix="CYPHERLINK_", env_file=".env", extra="ignore")

    strict_operators: bool = False
    strict_sort_direction: bool = False
    alias: str = Field(default="n", pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")

    def to_options(self) -> CompilerOptions:
        """Freeze into the immutable options passed to every compile call."""
        return CompilerOptions(
            strict_operators=self.strict_operators,
            strict_sort_direction=self.strict_sort_direction,
            alias=self.alias,
        )


class MigrationSettings(BaseSettings):
    """Schema migration settings."""

    model_config = SettingsConfigDict(env_prefix="MIGRATION_", env_file=".env", extra="ignore")

    log_dir: str = "workspace/logs/migrations"
    run_log: bool = True


class CypherlinkSettings(BaseSettings):
    """
    Master settings class that aggregates all settings.

    Usage:
        settings = CypherlinkSettings()
        print(settings.neo4j.uri)
        print(settings.compiler.to_options())
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    models_file: str = Field(default="models.yaml", alias="CYPHERLINK_MODELS_FILE")

    # Nested settings are loaded separately
    @property
    def neo4j(self) -> Neo4jSettings:
        return Neo4jSettings()

    @property
    def compiler(self) -> CompilerSettings:
        return CompilerSettings()

    @property
    def migration(self) -> MigrationSettings:
        return MigrationSettings()
