"""Model metadata and schema state types.

ModelDefinition and PropertyDefinition describe ORM models the way they are
declared (usually in a YAML file). The remaining types describe schema state:
what a model requires, and what the server currently has.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

__all__ = [
    "PropertyDefinition",
    "ModelDefinition",
    "ModelRegistry",
    "load_models",
    "SchemaKind",
    "LiveSchemaEntry",
    "ModelSchemaRequirement",
]

# Fields stored as ISO strings and converted back to datetime on read
DATE_FIELDS = frozenset({"created", "lastUpdated"})


# =============================================================================
# Model Metadata
# =============================================================================


class PropertyDefinition(BaseModel):
    """A single model property."""

    type: str = Field(default="string", description="Declared property type")
    id: bool = Field(default=False, description="Property is the model's id")
    required: bool = Field(default=False, description="Property must be present")
    index: bool | dict[str, Any] | None = Field(
        default=None, description="True, or an index options mapping"
    )
    unique: bool = Field(default=False, description="Values must be unique")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> str:
        return str(v).lower() if v is not None else "string"


class ModelDefinition(BaseModel):
    """An ORM model: its name, properties and index declarations."""

    name: str = Field(..., min_length=1)
    properties: dict[str, PropertyDefinition] = Field(default_factory=dict)
    label_override: str | None = Field(default=None, alias="label")
    indexes: dict[str, Any] | list[str] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    @field_validator("properties", mode="before")
    @classmethod
    def expand_shorthand(cls, v: Any) -> Any:
        """Allow ``age: number`` as shorthand for ``age: {type: number}``."""
        if isinstance(v, Mapping):
            return {
                name: {"type": spec} if isinstance(spec, str) else (spec or {})
                for name, spec in v.items()
            }
        return v

    @property
    def label(self) -> str:
        """Node label; defaults to the model name."""
        return self.label_override or self.name

    @property
    def id_name(self) -> str:
        """Name of the id property; ``id`` unless a property is flagged."""
        for prop_name, prop in self.properties.items():
            if prop.id:
                return prop_name
        return "id"

    @property
    def date_properties(self) -> frozenset[str]:
        """Properties whose values are converted to datetime on read."""
        typed = {name for name, prop in self.properties.items() if prop.type == "date"}
        return frozenset(typed) | DATE_FIELDS


class ModelRegistry:
    """Name -> ModelDefinition lookup shared by the connector and the CLI."""

    def __init__(self, models: list[ModelDefinition] | None = None):
        self._models: dict[str, ModelDefinition] = {}
        for model in models or []:
            self.register(model)

    def register(self, model: ModelDefinition) -> None:
        self._models[model.name] = model

    def get(self, name: str) -> ModelDefinition:
        try:
            return self._models[name]
        except KeyError:
            raise KeyError(f"Unknown model: {name}") from None

    def names(self) -> list[str]:
        return list(self._models)

    def __contains__(self, name: object) -> bool:
        return name in self._models

    def __len__(self) -> int:
        return len(self._models)


def load_models(path: str | Path) -> ModelRegistry:
    """Load model definitions from a YAML file.

    The file holds a top-level ``models`` mapping of model name to
    definition::

        models:
          User:
            properties:
              email: {type: string, index: true, unique: true}
            indexes:
              age_index: {age: -1}

    Args:
        path: Path to the YAML file

    Returns:
        Registry with every model in the file
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    models = data.get("models", {}) if isinstance(data, Mapping) else {}
    registry = ModelRegistry()
    for name, spec in models.items():
        registry.register(ModelDefinition.model_validate({"name": name, **(spec or {})}))

    logger.info(f"Loaded {len(registry)} model definitions from {path}")
    return registry


# =============================================================================
# Schema State
# =============================================================================


class SchemaKind(str, Enum):
    """Kinds of live schema objects the reconciler distinguishes."""

    UNIQUE_CONSTRAINT = "unique_constraint"
    OTHER_CONSTRAINT = "other_constraint"
    INDEX = "index"


# SHOW CONSTRAINTS type values that mean single-property uniqueness
_UNIQUE_CONSTRAINT_TYPES = frozenset({"UNIQUENESS", "NODE_PROPERTY_UNIQUENESS"})


@dataclass(frozen=True)
class LiveSchemaEntry:
    """A constraint or index reported by the server.

    Attributes:
        name: Server-side name, used in DROP statements
        label: Node label, or None for token-lookup indexes
        property_keys: Properties covered, in declared order
        kind: Constraint or index kind
        owned_by_constraint: Index exists only to back a constraint and
            cannot be dropped directly
    """

    name: str
    label: str | None
    property_keys: tuple[str, ...]
    kind: SchemaKind
    owned_by_constraint: bool = False

    @classmethod
    def from_constraint_record(cls, record: Mapping[str, Any]) -> LiveSchemaEntry:
        """Build from a ``SHOW CONSTRAINTS`` row."""
        kind = (
            SchemaKind.UNIQUE_CONSTRAINT
            if str(record.get("type", "")).upper() in _UNIQUE_CONSTRAINT_TYPES
            else SchemaKind.OTHER_CONSTRAINT
        )
        return cls(
            name=record["name"],
            label=_first(record.get("labelsOrTypes")),
            property_keys=tuple(record.get("properties") or ()),
            kind=kind,
        )

    @classmethod
    def from_index_record(cls, record: Mapping[str, Any]) -> LiveSchemaEntry:
        """Build from a ``SHOW INDEXES`` row."""
        return cls(
            name=record["name"],
            label=_first(record.get("labelsOrTypes")),
            property_keys=tuple(record.get("properties") or ()),
            kind=SchemaKind.INDEX,
            owned_by_constraint=bool(record.get("owningConstraint")),
        )


def _first(values: Any) -> str | None:
    if not values:
        return None
    return values[0]


@dataclass
class ModelSchemaRequirement:
    """Constraints and indexes a model needs, each in declaration order."""

    label: str
    id_property: str
    unique_properties: list[str] = field(default_factory=list)
    index_properties: list[str] = field(default_factory=list)
    existence_properties: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        for bucket in (self.unique_properties, self.existence_properties):
            if self.id_property not in bucket:
                bucket.insert(0, self.id_property)
