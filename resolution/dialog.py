"""
SlotDialog — per-slot matching and conversational fallback.

Responsibility:
- Best match: direct extraction, then candidate generation with fuzzy or
  single-candidate selection
- Fuzzy disambiguation: numbered choices plus "none of these"
- Interactive fallback, a bounded state machine:

    INITIAL_ASK ──exit──────────────────────────────▶ DONE (no value)
    INITIAL_ASK ──single word / free-text handler───▶ DONE (reply)
    INITIAL_ASK ──phrase──▶ FUZZY_DISAMBIGUATE ──hit─▶ DONE (value)
                            FUZZY_DISAMBIGUATE ──miss▶ FINAL_ASK ──▶ DONE (reply or none)

A dialog never raises for user behaviour; handler, gateway and lookup
failures propagate to the engine.
"""

from __future__ import annotations

import logging
import re
from enum import Enum

from conversation.gateway import DEFAULT_RESPONSE_SHAPE, ConversationGateway
from decoding.decoder import StatementDecoder
from handlers.base import ValueExtractor, accepts_free_text, is_fuzzy_by_default, supports_candidates
from matching.fuzzy import FuzzyMatcher
from observability.logger import Observability
from shared.errors import ConfigurationError
from shared.messages import (
    NONE_REPLY,
    fuzzy_choice_prompt,
    is_exit,
    just_value_prompt,
    parsing_disabled_prompt,
    value_prompt,
)
from shared.models import ParameterSlot
from shared.text_utils import is_single_word

logger = logging.getLogger(__name__)

_CHOICE_NUMBER = re.compile(r"^\d+$")


class DialogState(str, Enum):
    INITIAL_ASK = "initial_ask"
    FUZZY_DISAMBIGUATE = "fuzzy_disambiguate"
    FINAL_ASK = "final_ask"
    DONE = "done"


def interpret_choice(reply: str, choices: list[str]) -> str | None:
    """
    Map a reply to one of the shown choices.
    Accepts a 1-based number or the literal text of a choice. The extra
    last number and "none" mean no choice; anything else is invalid.
    """
    reply = reply.strip()
    if _CHOICE_NUMBER.match(reply):
        number = int(reply)
        if 1 <= number <= len(choices):
            return choices[number - 1]
        if number != len(choices) + 1:
            logger.debug("Invalid choice number %s (choices: %d)", number, len(choices))
        return None
    if reply == NONE_REPLY:
        return None
    if reply in choices:
        return reply
    logger.debug("Invalid choice text '%s'", reply)
    return None


class SlotDialog:
    """Matching and user round-trips for one slot within one resolution call."""

    def __init__(
        self,
        slot: ParameterSlot,
        handler: ValueExtractor,
        conversation: ConversationGateway | None,
        fuzzy_matcher: FuzzyMatcher,
        observability: Observability | None = None,
    ):
        self.slot = slot
        self.handler = handler
        self.conversation = conversation
        self.fuzzy_matcher = fuzzy_matcher
        self.obs = observability or Observability()
        self.state = DialogState.DONE

    async def _ask(self, prompt: str, kind: str) -> str:
        if self.conversation is None:
            raise ConfigurationError(
                f"No conversation gateway is configured; cannot ask for '{self.slot.name}'"
            )
        self.obs.record_prompt(self.slot.name, kind)
        reply = await self.conversation.ask(prompt, DEFAULT_RESPONSE_SHAPE)
        return reply.strip()

    # ─── Automated matching ────────────────────────────────────

    async def best_match(
        self, statement: str, decoder: StatementDecoder, authoritative: list[str] | None
    ) -> str | None:
        """Direct extraction, then candidate-based selection."""
        universe = authoritative if authoritative is not None else list(self.slot.static_values or [])
        value = await self.handler.extract_value(statement, decoder, universe)
        if value:
            logger.debug("[%s] extracted '%s' from '%s'", self.slot.name, value, statement)
            return value

        if not supports_candidates(self.handler):
            return None

        candidates = await self.handler.get_candidates(statement, decoder)
        logger.debug("[%s] candidates in '%s': %s", self.slot.name, statement, candidates)
        if not candidates:
            return None

        if is_fuzzy_by_default(self.handler) or authoritative is not None:
            return await self.disambiguate(candidates, universe)

        if len(candidates) == 1:
            return candidates[0]
        return None

    async def disambiguate(self, queries: list[str], universe: list[str]) -> str | None:
        """Ask the user to pick one of the best fuzzy matches; no matches means no prompt."""
        choices = self.fuzzy_matcher.match(queries, universe)
        if not choices:
            logger.debug("[%s] no fuzzy matches for %s", self.slot.name, queries)
            return None

        reply = await self._ask(fuzzy_choice_prompt(self.slot, choices), "fuzzy_choice")
        value = interpret_choice(reply, choices)
        logger.debug("[%s] fuzzy reply '%s' → %s", self.slot.name, reply, value)
        return value

    # ─── Conversational fallback ───────────────────────────────

    async def ask_for_value(
        self, decoder: StatementDecoder, authoritative: list[str] | None
    ) -> str | None:
        self.state = DialogState.INITIAL_ASK
        value: str | None = None
        reply = ""

        while self.state is not DialogState.DONE:
            if self.state is DialogState.INITIAL_ASK:
                reply = await self._ask(value_prompt(self.slot), "value")
                if is_exit(reply):
                    logger.debug("[%s] user exited", self.slot.name)
                    self.state = DialogState.DONE
                elif is_single_word(reply) or accepts_free_text(self.handler):
                    value = reply or None
                    self.state = DialogState.DONE
                else:
                    self.state = DialogState.FUZZY_DISAMBIGUATE

            elif self.state is DialogState.FUZZY_DISAMBIGUATE:
                universe = authoritative if authoritative is not None else self.slot.static_values
                value = await self.best_match(reply, decoder.clone(reply), universe)
                self.state = DialogState.DONE if value else DialogState.FINAL_ASK

            elif self.state is DialogState.FINAL_ASK:
                value = await self.ask_for_just_value()
                self.state = DialogState.DONE

        return value

    async def ask_for_just_value(self) -> str | None:
        reply = await self._ask(just_value_prompt(self.slot), "just_value")
        if is_exit(reply):
            return None
        return reply or None

    async def ask_without_parsing(self) -> str | None:
        """Parsing-disabled mode: required slots get one bare prompt, optional ones none."""
        if not self.slot.required:
            return None
        reply = await self._ask(parsing_disabled_prompt(self.slot), "parsing_disabled")
        if is_exit(reply):
            return None
        return reply or None
