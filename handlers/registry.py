"""
Type Handler Registry — Maps parameter type → handler.

Pure lookup, no logic. Built once at start-up, read-only afterwards.
"""

from __future__ import annotations

import logging

from handlers.base import ValueExtractor, supports_candidates
from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)


class TypeHandlerRegistry:
    """Registry mapping parameter type names to their handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, ValueExtractor] = {}

    def register(self, type_name: str, handler: ValueExtractor) -> None:
        """Register a handler; a later registration for the same type replaces it."""
        if not isinstance(handler, ValueExtractor):
            raise ConfigurationError(
                f"Handler {type(handler).__name__} for type '{type_name}' has no extract_value"
            )
        logger.info("Registered type handler: %s → %s", type_name, type(handler).__name__)
        self._handlers[type_name] = handler

    def lookup(self, type_name: str) -> ValueExtractor | None:
        """Resolve a handler by type name. Returns None if not found."""
        return self._handlers.get(type_name)

    def require(self, type_name: str) -> ValueExtractor:
        handler = self.lookup(type_name)
        if handler is None:
            raise ConfigurationError(
                f"No handler is registered for parameter type '{type_name}'"
            )
        return handler

    def supports_candidates(self, type_name: str) -> bool:
        handler = self.lookup(type_name)
        return handler is not None and supports_candidates(handler)

    @property
    def registered_types(self) -> list[str]:
        """List all registered type names."""
        return list(self._handlers.keys())
