"""
Schema Catalog — Maps schema name → ordered slots and seed sentences.

Responsibility:
- Hold the parameter definitions of every schema the classifier can pick
- Load definitions from inline JSON or a JSON file
- Serve seed texts for the decoder's noun stop-set

A catalog file is either a JSON array of schema objects or an object with a
"schemas" array:

    [{"name": "scale", "seed_texts": ["scale my app"],
      "parameters": [{"name": "count", "type": "number"}]}]
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from shared.errors import ConfigurationError
from shared.models import ParameterSlot, SchemaDefinition
from shared.settings import ResolverSettings

logger = logging.getLogger(__name__)


class SchemaCatalog:
    """In-memory catalog; read-only once loaded."""

    def __init__(self) -> None:
        self._schemas: dict[str, SchemaDefinition] = {}

    def register_schema(self, schema: SchemaDefinition | dict[str, Any]) -> SchemaDefinition:
        if not isinstance(schema, SchemaDefinition):
            schema = SchemaDefinition.model_validate(schema)
        self._schemas[schema.name] = schema
        logger.info("Registered schema: %s (%d parameters)", schema.name, len(schema.parameters))
        return schema

    def resolve_schema(self, name: str) -> SchemaDefinition | None:
        return self._schemas.get(name)

    def slots(self, name: str) -> list[ParameterSlot]:
        schema = self.resolve_schema(name)
        if schema is None:
            raise ConfigurationError(f"Unknown schema '{name}'")
        return list(schema.parameters)

    def seed_texts(self, name: str) -> list[str]:
        """Seed sentences for a schema; unknown schemas have none."""
        schema = self.resolve_schema(name)
        return list(schema.seed_texts) if schema else []

    @property
    def schema_names(self) -> list[str]:
        return list(self._schemas.keys())

    # ─── Loading ───────────────────────────────────────────────

    def load_json(self, payload: Any) -> int:
        """Register every schema in a decoded JSON payload. Returns the count."""
        if isinstance(payload, dict):
            payload = payload.get("schemas", [])
        if not isinstance(payload, list):
            raise ConfigurationError("Schema catalog must be a JSON array or {'schemas': [...]}")

        for item in payload:
            try:
                self.register_schema(item)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid schema definition: {e}") from e
        return len(payload)

    def load_file(self, path: str | Path) -> int:
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Schema catalog file not found: {path}")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Failed to parse schema catalog '{path}': {e}") from e
        return self.load_json(payload)

    @classmethod
    def from_settings(cls, settings: ResolverSettings) -> "SchemaCatalog":
        """
        Load from configuration.
        Priority:
        1. SCHEMA_CATALOG_JSON
        2. SCHEMA_FILE
        """
        catalog = cls()
        if settings.schema_catalog_json:
            try:
                payload = json.loads(settings.schema_catalog_json)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid SCHEMA_CATALOG_JSON: {e}") from e
            catalog.load_json(payload)
        elif settings.schema_file:
            catalog.load_file(settings.schema_file)
        else:
            logger.debug("No schema catalog configured; seed texts will be empty.")
        return catalog
