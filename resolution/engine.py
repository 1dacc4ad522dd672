"""
ResolutionEngine — two-phase parameter resolution.

Responsibility:
- Phase 1: concurrent best-effort extraction for every missing slot, repeated
  until a pass resolves nothing new (at most one pass per slot)
- Phase 2: sequential per-slot pipeline in schema order with value
  suppliers, fuzzy disambiguation and the conversational fallback
- Strip every resolved value from the live statement before later slots run

Prohibitions:
- No schema selection (the caller already picked the schema)
- No retries, no timeouts (gateway and services own those)
- Never raises for user cancellation; missing keys express it
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from conversation.gateway import ConversationGateway
from decoding.decoder import SeedNouns, StatementDecoder
from decoding.entity_service import EntityService, EntityServiceClient
from decoding.tagger import Tagger
from handlers import build_default_registry
from handlers.registry import TypeHandlerRegistry
from matching.fuzzy import FuzzyMatcher
from observability.logger import Observability
from registry.schema_catalog import SchemaCatalog
from registry.supplier_registry import SupplierRegistry
from resolution.dialog import SlotDialog
from shared.errors import ConfigurationError
from shared.models import ParameterSlot
from shared.settings import ResolverSettings
from shared.text_utils import remove_value_from_statement, remove_values_from_statement

logger = logging.getLogger(__name__)


class ResolutionEngine:
    """Resolves the slots of one schema out of a natural-language statement."""

    def __init__(
        self,
        handlers: TypeHandlerRegistry | None = None,
        conversation: ConversationGateway | None = None,
        fuzzy_matcher: FuzzyMatcher | None = None,
        suppliers: SupplierRegistry | None = None,
        schema_catalog: SchemaCatalog | None = None,
        entity_service: EntityService | None = None,
        tagger: Tagger | None = None,
        settings: ResolverSettings | None = None,
    ):
        self.settings = settings or ResolverSettings()
        self.handlers = handlers or build_default_registry()
        self.conversation = conversation
        self.fuzzy_matcher = fuzzy_matcher or FuzzyMatcher.from_settings(self.settings)
        self.suppliers = suppliers or SupplierRegistry()
        self.schema_catalog = schema_catalog or SchemaCatalog()
        self.entity_service = entity_service
        self.tagger = tagger
        self._seed_nouns: dict[str, SeedNouns] = {}

    @classmethod
    def from_settings(
        cls,
        settings: ResolverSettings,
        conversation: ConversationGateway | None = None,
        suppliers: SupplierRegistry | None = None,
        tagger: Tagger | None = None,
    ) -> "ResolutionEngine":
        """Wire every collaborator from configuration."""
        return cls(
            handlers=build_default_registry(),
            conversation=conversation,
            fuzzy_matcher=FuzzyMatcher.from_settings(settings),
            suppliers=suppliers,
            schema_catalog=SchemaCatalog.from_settings(settings),
            entity_service=EntityServiceClient.from_settings(settings),
            tagger=tagger,
            settings=settings,
        )

    # ─── Public API ────────────────────────────────────────────

    async def resolve(
        self,
        statement: str,
        schema_name: str,
        slots: list[ParameterSlot] | None = None,
        context: Any = None,
        session_id: str | None = None,
    ) -> dict[str, str]:
        """
        Resolve every slot of a schema.
        `slots` defaults to the catalog entry for `schema_name`.
        Returns a possibly partial name → value map.
        """
        if slots is None:
            slots = self.schema_catalog.slots(schema_name)
        if not slots:
            return {}

        obs = Observability(session_id=session_id, schema_name=schema_name)
        try:
            if self.settings.entity_parsing_disabled:
                logger.debug("Parameter parsing is disabled; asking for each required value.")
                return await self._prompt_each_required(slots, obs)

            for slot in slots:
                self.handlers.require(slot.type)

            decoder = self._decoder(statement, schema_name)

            with obs.measure("phase1", {"slots": len(slots)}):
                values, passes = await self._phase1(statement, decoder, slots)
            obs.log_event("phase1_completed", {"passes": passes, "resolved": sorted(values)})

            with obs.measure("phase2"):
                values = await self._phase2(statement, decoder, slots, values, context, obs)
            obs.log_event(
                "phase2_completed",
                {
                    "resolved": sorted(values),
                    "missing": [s.name for s in slots if s.name not in values],
                    "prompts": obs.prompt_count,
                },
            )
            return values
        except Exception as e:
            logger.error("Resolution failed for schema %s (statement=%r): %s", schema_name, statement, e)
            raise

    async def resolve_parameter(
        self,
        statement: str,
        schema_name: str,
        slot_name: str,
        slots: list[ParameterSlot] | None = None,
        current_values: dict[str, str] | None = None,
        context: Any = None,
    ) -> dict[str, str]:
        """Run the per-slot pipeline for one slot; returns an updated copy of the values."""
        if slots is None:
            slots = self.schema_catalog.slots(schema_name)
        values = dict(current_values or {})

        slot = next((s for s in slots if s.name == slot_name), None)
        if slot is None:
            logger.error("Parameter '%s' is not defined for schema %s", slot_name, schema_name)
            raise ConfigurationError(
                f"The {slot_name} parameter definition within {schema_name} could not be found"
            )

        obs = Observability(schema_name=schema_name)
        try:
            if self.settings.entity_parsing_disabled:
                handler = self.handlers.require(slot.type)
                value = await self._dialog(slot, handler, obs).ask_without_parsing()
            else:
                decoder = self._decoder(remove_values_from_statement(statement, values), schema_name)
                value = await self._resolve_slot(slot, decoder, values, context, obs)
        except Exception as e:
            logger.error("Resolution of %s:%s failed: %s", schema_name, slot_name, e)
            raise

        if value:
            values[slot.name] = value
            obs.log_event("parameter_resolved", {"slot": slot.name, "phase": "single"})
        return values

    # ─── Phases ────────────────────────────────────────────────

    async def _phase1(
        self, statement: str, decoder: StatementDecoder, slots: list[ParameterSlot]
    ) -> tuple[dict[str, str], int]:
        values: dict[str, str] = {}
        passes = 0

        while True:
            missing = [slot for slot in slots if slot.name not in values]
            if not missing:
                break
            passes += 1

            decoder.modify_statement(remove_values_from_statement(statement, values))
            current = decoder.statement
            results = await asyncio.gather(
                *(
                    self.handlers.require(slot.type).extract_value(
                        current, decoder, list(slot.static_values or [])
                    )
                    for slot in missing
                )
            )

            found = {slot.name: value for slot, value in zip(missing, results) if value}
            logger.debug("Phase 1 pass %d on '%s' found %s", passes, current, found)
            if not found:
                break
            values.update(found)

        return values, passes

    async def _phase2(
        self,
        statement: str,
        decoder: StatementDecoder,
        slots: list[ParameterSlot],
        values: dict[str, str],
        context: Any,
        obs: Observability,
    ) -> dict[str, str]:
        values = dict(values)
        decoder.modify_statement(remove_values_from_statement(statement, values))

        for slot in slots:
            if slot.name in values:
                continue
            value = await self._resolve_slot(slot, decoder, values, context, obs)
            if not value:
                continue
            values[slot.name] = value
            decoder.modify_statement(remove_value_from_statement(decoder.statement, value))
            obs.log_event("parameter_resolved", {"slot": slot.name, "phase": 2})

        return values

    async def _resolve_slot(
        self,
        slot: ParameterSlot,
        decoder: StatementDecoder,
        values: dict[str, str],
        context: Any,
        obs: Observability,
    ) -> str | None:
        handler = self.handlers.require(slot.type)

        authoritative: list[str] | None = None
        if slot.value_supplier:
            authoritative = await self.suppliers.call(slot.value_supplier, context, slot.name, values)
            logger.debug("[%s] authoritative values: %s", slot.name, authoritative)

        dialog = self._dialog(slot, handler, obs)
        value = await dialog.best_match(decoder.statement, decoder, authoritative)
        if value is None and slot.required:
            value = await dialog.ask_for_value(decoder, authoritative)
        return value

    async def _prompt_each_required(
        self, slots: list[ParameterSlot], obs: Observability
    ) -> dict[str, str]:
        values: dict[str, str] = {}
        for slot in slots:
            handler = self.handlers.require(slot.type)
            value = await self._dialog(slot, handler, obs).ask_without_parsing()
            if value:
                values[slot.name] = value
        return values

    # ─── Helpers ───────────────────────────────────────────────

    def _dialog(self, slot: ParameterSlot, handler: Any, obs: Observability) -> SlotDialog:
        return SlotDialog(slot, handler, self.conversation, self.fuzzy_matcher, obs)

    def _decoder(self, statement: str, schema_name: str) -> StatementDecoder:
        seed_nouns = self._seed_nouns.get(schema_name)
        if seed_nouns is None:
            seed_nouns = SeedNouns(self.schema_catalog.seed_texts(schema_name))
            self._seed_nouns[schema_name] = seed_nouns
        return StatementDecoder(
            statement,
            tagger=self.tagger,
            entity_service=self.entity_service,
            seed_nouns=seed_nouns,
        )
