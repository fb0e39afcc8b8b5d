"""Desired schema state derived from model metadata."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .models import ModelDefinition, ModelSchemaRequirement

logger = logging.getLogger(__name__)

__all__ = ["compute_requirement"]


def _add(bucket: list[str], prop: str) -> None:
    if prop not in bucket:
        bucket.append(prop)


def _is_unique_index(index: Any) -> bool:
    return isinstance(index, Mapping) and bool(index.get("unique"))


def compute_requirement(model: ModelDefinition) -> ModelSchemaRequirement:
    """Work out the constraints and indexes a model needs.

    Sources, in order:
    - Model-level ``indexes``: ``{name: {keys: {...}, options: {unique: ...}}}``,
      ``{name: {field: direction, ...}}`` or a plain list of field names.
    - Property-level ``index`` annotations, with ``unique`` either inside the
      index options or on the property itself.

    Composite unique keys are not supported by the server, so multi-property
    declarations degrade to one single-property index per field. A unique
    constraint already creates a backing index, so a property never appears
    in both the unique and plain index lists.

    Args:
        model: Model definition

    Returns:
        ModelSchemaRequirement for the model's label
    """
    requirement = ModelSchemaRequirement(label=model.label, id_property=model.id_name)
    unique = requirement.unique_properties
    indexed: list[str] = []

    indexes = model.indexes
    if isinstance(indexes, Mapping):
        for index_name, index in indexes.items():
            if not isinstance(index, Mapping):
                logger.warning(
                    f"Ignoring index '{index_name}' on {model.name}: expected a mapping"
                )
                continue
            if "keys" in index:
                keys = list(index.get("keys") or {})
                options = index.get("options") or {}
                if len(keys) == 1 and options.get("unique"):
                    _add(unique, keys[0])
                else:
                    for key in keys:
                        _add(indexed, key)
            else:
                for key in index:
                    _add(indexed, key)
    else:
        for key in indexes:
            _add(indexed, key)

    for prop_name, prop in model.properties.items():
        if not prop.index:
            continue
        if _is_unique_index(prop.index) or prop.unique:
            _add(unique, prop_name)
        else:
            _add(indexed, prop_name)

    requirement.index_properties.extend(p for p in indexed if p not in unique)

    logger.debug(
        f"Schema requirement for {model.name}: unique={unique}, "
        f"index={requirement.index_properties}, "
        f"exists={requirement.existence_properties}"
    )
    return requirement
