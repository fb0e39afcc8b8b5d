"""
Shared pytest fixtures for cypherlink tests.

Fixtures are organized by scope:
- session: Expensive setup done once (e.g., database connections)
- function: Fresh state for each test (default)
"""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest

from cypherlink.modules.schema.models import (
    LiveSchemaEntry,
    ModelDefinition,
    ModelRegistry,
    SchemaKind,
)

# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def post_model():
    """Blog post model with a date property and a title index."""
    return ModelDefinition.model_validate(
        {
            "name": "Post",
            "properties": {
                "id": {"type": "string", "id": True},
                "title": {"type": "string", "index": True},
                "content": "string",
                "comments": "array",
                "published": "date",
            },
        }
    )


@pytest.fixture
def user_model():
    """User model with a unique email and a model-level age index."""
    return ModelDefinition.model_validate(
        {
            "name": "User",
            "properties": {
                "email": {"type": "string", "index": {"unique": True}},
                "name": "string",
                "age": "number",
            },
            "indexes": {"age_index": {"age": -1}},
        }
    )


@pytest.fixture
def registry(post_model, user_model):
    """Registry holding the Post and User models."""
    return ModelRegistry([post_model, user_model])


@pytest.fixture
def models_yaml(tmp_path):
    """YAML file declaring Post and User models."""
    path = tmp_path / "models.yaml"
    path.write_text(
        """
models:
  Post:
    properties:
      id: {type: string, id: true}
      title: {type: string, index: true}
      content: string
  User:
    label: Person
    properties:
      email: {type: string, index: {unique: true}}
      age: number
    indexes:
      age_index: {age: -1}
""",
        encoding="utf-8",
    )
    return path


# =============================================================================
# Executor Fixtures
# =============================================================================


@pytest.fixture
def mock_executor():
    """Schema executor double with no rows and an empty live schema."""
    executor = MagicMock()
    executor.execute.return_value = []
    executor.introspect_constraints.return_value = []
    executor.introspect_indexes.return_value = []
    return executor


@pytest.fixture
def live_schema():
    """Factory for LiveSchemaEntry objects.

    Usage:
        def test_something(live_schema):
            entry = live_schema("User_email", "User", "email", SchemaKind.UNIQUE_CONSTRAINT)
    """

    def _make(name, label, prop, kind=SchemaKind.INDEX, owned=False):
        return LiveSchemaEntry(
            name=name,
            label=label,
            property_keys=(prop,),
            kind=kind,
            owned_by_constraint=owned,
        )

    return _make


# =============================================================================
# Integration Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def neo4j_connection():
    """Live Neo4j connection, only when NEO4J_TEST_URI is set."""
    uri = os.getenv("NEO4J_TEST_URI")
    if not uri:
        pytest.skip("NEO4J_TEST_URI not set")

    from cypherlink.adapters.neo4j import Neo4jConnection
    from cypherlink.services.config_models import Neo4jSettings

    settings = Neo4jSettings(
        uri=uri,
        username=os.getenv("NEO4J_TEST_USERNAME", "neo4j"),
        password=os.getenv("NEO4J_TEST_PASSWORD", ""),
        database=os.getenv("NEO4J_TEST_DATABASE", "neo4j"),
    )
    conn = Neo4jConnection(settings)
    conn.connect()
    yield conn
    conn.disconnect()


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: Integration tests (require Neo4j)")
