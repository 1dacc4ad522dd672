"""
Supplier Registry — Maps supplier name → dynamic value supplier.

A supplier returns the authoritative value list for a slot at resolution
time (e.g. the repositories the current user can see). Sync and async
callables are both accepted.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Union

from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)

SupplierResult = Union[list[str], None]
ValueSupplier = Callable[
    [Any, str, dict[str, str]], Union[SupplierResult, Awaitable[SupplierResult]]
]


class SupplierRegistry:
    """Registry mapping supplier names to callables."""

    def __init__(self) -> None:
        self._suppliers: dict[str, ValueSupplier] = {}

    def register(self, name: str, supplier: ValueSupplier) -> None:
        """Register a supplier function."""
        if not callable(supplier):
            raise ConfigurationError(f"Supplier '{name}' is not callable")
        logger.info(
            "Registered value supplier: %s → %s",
            name,
            getattr(supplier, "__name__", type(supplier).__name__),
        )
        self._suppliers[name] = supplier

    def resolve(self, name: str) -> ValueSupplier | None:
        """Resolve a supplier by name. Returns None if not found."""
        return self._suppliers.get(name)

    def require(self, name: str) -> ValueSupplier:
        supplier = self.resolve(name)
        if supplier is None:
            raise ConfigurationError(f"No value supplier is registered under '{name}'")
        return supplier

    async def call(
        self, name: str, context: Any, slot_name: str, current_values: dict[str, str]
    ) -> list[str] | None:
        """Invoke a supplier and normalize its result to a list of strings (or None)."""
        supplier = self.require(name)
        result = supplier(context, slot_name, dict(current_values))
        if inspect.isawaitable(result):
            result = await result
        if result is None:
            return None
        values = [str(v) for v in result]
        logger.debug("Supplier %s returned %d values for slot %s", name, len(values), slot_name)
        return values
