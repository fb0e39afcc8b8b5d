"""Neo4j Connection - executes compiled statements and reports the live schema.

This is the only module that talks to the server. The compiler and the
schema reconciler depend on the QueryExecutor / SchemaExecutor protocols and
never import the driver.

Usage:
    from cypherlink.adapters.neo4j import Neo4jConnection

    conn = Neo4jConnection()
    conn.connect()

    rows = conn.execute("MATCH (n:User) RETURN count(n) AS count")
    print(f"Total users: {rows[0]['count']}")

    conn.disconnect()

    # Or use context manager
    with Neo4jConnection() as conn:
        constraints = conn.introspect_constraints()
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from cypherlink.common.exceptions import ExecutionError
from cypherlink.modules.schema.models import LiveSchemaEntry
from cypherlink.services.config_models import Neo4jSettings

if TYPE_CHECKING:
    from neo4j import Driver

try:
    from neo4j import GraphDatabase
except ModuleNotFoundError:
    GraphDatabase = None  # type: ignore[assignment,misc]

logger = logging.getLogger(__name__)

T = TypeVar("T")

SHOW_CONSTRAINTS = "SHOW CONSTRAINTS YIELD name, type, labelsOrTypes, properties"
SHOW_INDEXES = (
    "SHOW INDEXES YIELD name, type, labelsOrTypes, properties, owningConstraint"
)


def requires_connection(
    func: Callable[..., T],
) -> Callable[..., T]:
    """
    Decorator to check the Neo4j connection before an operation.

    Raises ExecutionError if the connection is not established.
    """

    @wraps(func)
    def wrapper(self: "Neo4jConnection", *args: Any, **kwargs: Any) -> T:
        if self.driver is None:
            raise ExecutionError("Not connected to Neo4j. Call connect() first.")
        return func(self, *args, **kwargs)

    return wrapper


class Neo4jConnection:
    """Manages a Neo4j driver and runs Cypher statements.

    Implements the SchemaExecutor protocol used by the schema reconciler.

    Example:
        >>> conn = Neo4jConnection()
        >>> conn.connect()
        >>> conn.execute("CREATE (n:User {id: $id})", {"id": "u1"})
        >>> conn.disconnect()
    """

    def __init__(self, settings: Neo4jSettings | None = None):
        """
        Initialize the connection from settings.

        Args:
            settings: Connection settings; read from the environment if None
        """
        self.settings = settings or Neo4jSettings()
        self.driver: Driver | None = None

        logger.info(f"Initialized Neo4jConnection for {self.settings.uri}")

    @property
    def database(self) -> str:
        return self.settings.database

    @property
    def enterprise(self) -> bool:
        return self.settings.enterprise

    def connect(self) -> None:
        """Establish connection to Neo4j."""
        if self.driver is not None:
            logger.warning("Connection already established")
            return

        if GraphDatabase is None:
            raise ModuleNotFoundError(
                "neo4j is not installed. Install it to use Neo4jConnection."
            )

        settings = self.settings
        auth = None
        if settings.username or settings.password:
            auth = (settings.username, settings.password)

        try:
            self.driver = GraphDatabase.driver(
                settings.uri,
                auth=auth,
                max_connection_lifetime=settings.max_connection_lifetime,
                max_connection_pool_size=settings.max_connection_pool_size,
                connection_acquisition_timeout=settings.connection_acquisition_timeout,
                encrypted=settings.encrypted,
            )
            self.driver.verify_connectivity()
            logger.info(f"Successfully connected to Neo4j at {settings.uri}")

        except Exception as e:
            logger.error(f"Failed to connect to Neo4j: {e}")
            self.driver = None
            raise ConnectionError(f"Could not connect to Neo4j: {e}") from e

    def disconnect(self) -> None:
        """Close the Neo4j connection."""
        if self.driver is not None:
            self.driver.close()
            self.driver = None
            logger.info("Disconnected from Neo4j")

    def __enter__(self) -> Neo4jConnection:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any
    ) -> None:
        """Context manager exit."""
        self.disconnect()

    def _log_query(self, query: str, parameters: dict[str, Any] | None) -> None:
        if self.settings.log_queries:
            logger.debug(f"Executing query: {query}")
            logger.debug(f"Parameters: {parameters}")

    @requires_connection
    def execute(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
        database: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        Execute a Cypher statement in an auto-commit transaction.

        Args:
            query: Cypher query string
            parameters: Bound parameters
            database: Database name (defaults to the configured database)

        Returns:
            List of result records as dictionaries

        Raises:
            ExecutionError: If not connected or the server rejects the query
        """
        self._log_query(query, parameters)
        try:
            params: dict[str, Any] = parameters if parameters is not None else {}
            with self.driver.session(database=database or self.database) as session:  # type: ignore[union-attr]
                result = session.run(query, params)  # type: ignore[arg-type]
                return [dict(record) for record in result]

        except Exception as e:
            logger.error(f"Query execution failed: {e}")
            logger.error(f"Query: {query}")
            raise ExecutionError(str(e), query=query) from e

    def ping(self) -> bool:
        """Return True if the server answers a trivial query."""
        try:
            rows = self.execute("RETURN 1 AS ok")
        except ExecutionError as e:
            logger.warning(f"Ping failed: {e}")
            return False
        return bool(rows) and rows[0].get("ok") == 1

    # ==================== Schema Introspection ====================

    def introspect_constraints(self) -> list[LiveSchemaEntry]:
        """Return every constraint currently defined on the server."""
        rows = self.execute(SHOW_CONSTRAINTS)
        return [LiveSchemaEntry.from_constraint_record(row) for row in rows]

    def introspect_indexes(self) -> list[LiveSchemaEntry]:
        """Return every index currently defined on the server."""
        rows = self.execute(SHOW_INDEXES)
        return [LiveSchemaEntry.from_index_record(row) for row in rows]
