"""
Resolver Settings — environment-level configuration.

Responsibility:
- Read tunables from the process environment (and an optional .env file)
- Provide defaults matching the historical deployment values
- Stay immutable once built; components read it at construction time only
"""

from __future__ import annotations

import logging
import math
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_TRUTHY = ("1", "true", "yes", "on", "y")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _env_float(
    name: str,
    default: float,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float:
    """Parse a numeric variable; malformed or out-of-range values fall back to the default."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
        if not math.isfinite(value):
            raise ValueError(raw)
    except ValueError:
        logger.warning("Invalid numeric value for %s=%r; using default %s", name, raw, default)
        return default
    if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
        logger.warning(
            "Out-of-range value for %s=%r (allowed %s..%s); using default %s",
            name, raw, minimum, maximum, default,
        )
        return default
    return value


def _env_int(name: str, default: int, minimum: int | None = None) -> int:
    return int(_env_float(name, float(default), minimum=minimum))


def _env_str(name: str) -> str | None:
    raw = os.getenv(name, "").strip()
    return raw or None


class ResolverSettings(BaseModel):
    """Tunables consumed by the fuzzy matcher, the decoder and the engine."""
    model_config = {"frozen": True}

    fuzzy_match_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    fuzzy_match_location: int = Field(default=0, ge=0)
    fuzzy_match_distance: int = Field(default=100)
    fuzzy_match_distance_from_best: float = Field(default=0.5, ge=0.0)
    fuzzy_match_max_items: int = Field(default=10, ge=1)

    entity_parsing_disabled: bool = Field(
        default=False,
        description="Skip extraction entirely and prompt for each required value",
    )

    entity_service_url: str | None = Field(default=None)
    entity_service_api_key: str | None = Field(default=None)
    entity_service_dataset: str | None = Field(default=None)
    entity_service_timeout_seconds: float = Field(default=10.0, gt=0.0)

    log_level: str = Field(default="INFO")
    schema_file: str | None = Field(default=None)
    schema_catalog_json: str | None = Field(default=None)

    @property
    def entity_service_configured(self) -> bool:
        return bool(self.entity_service_url)

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "ResolverSettings":
        """Build settings from environment variables (after loading .env if present)."""
        if load_dotenv_file:
            load_dotenv(override=False)

        return cls(
            fuzzy_match_threshold=_env_float("FUZZY_MATCH_THRESHOLD", 0.6, 0.0, 1.0),
            fuzzy_match_location=_env_int("FUZZY_MATCH_LOCATION", 0, minimum=0),
            fuzzy_match_distance=_env_int("FUZZY_MATCH_DISTANCE", 100),
            fuzzy_match_distance_from_best=_env_float("FUZZY_MATCH_DISTANCE_FROM_BEST", 0.5, minimum=0.0),
            fuzzy_match_max_items=_env_int("FUZZY_MATCH_MAX_ITEMS", 10, minimum=1),
            entity_parsing_disabled=_env_bool("ENTITY_PARSING_DISABLED", False),
            entity_service_url=_env_str("ENTITY_SERVICE_URL"),
            entity_service_api_key=_env_str("ENTITY_SERVICE_API_KEY"),
            entity_service_dataset=_env_str("ENTITY_SERVICE_DATASET"),
            entity_service_timeout_seconds=_env_float("ENTITY_SERVICE_TIMEOUT_SECONDS", 10.0, minimum=0.1),
            log_level=(os.getenv("RESOLVER_LOG_LEVEL", "INFO").strip().upper() or "INFO"),
            schema_file=_env_str("SCHEMA_FILE"),
            schema_catalog_json=_env_str("SCHEMA_CATALOG_JSON"),
        )
