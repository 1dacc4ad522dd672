"""
StatementDecoder — cached linguistic views of one statement.

Responsibility:
- Tag the current statement (tokens + Penn Treebank tags)
- Derive nouns (minus nouns seen in the schema's seed sentences) and numbers
- Look up named entities through the optional entity service
- Memoize every view per statement version; replacing the statement drops all of them

One decoder belongs to one resolution call. `clone()` gives an independent
decoder for a sub-statement (e.g. a user's free-text reply) that shares the
seed-noun configuration, the tagger and the entity-service handle.
"""

from __future__ import annotations

import logging
import re

from decoding.entity_service import EntityService
from decoding.tagger import NOUN_TAGS, NUMBER_TAG, NltkTagger, Tagger
from shared.errors import ConfigurationError
from shared.models import NamedEntity

logger = logging.getLogger(__name__)

CITY_ENTITY_TYPE = "City"


class SeedNouns:
    """Nouns harvested once from the schema's seed sentences (lower-cased), plus 'i'."""

    def __init__(self, seed_texts: list[str] | None = None):
        self.seed_texts = list(seed_texts or [])
        self._nouns: frozenset[str] | None = None

    def get(self, tagger: Tagger) -> frozenset[str]:
        if self._nouns is None:
            nouns = {"i"}
            for text in self.seed_texts:
                for word, tag in tagger.tag(text):
                    if tag in NOUN_TAGS:
                        nouns.add(word.lower())
            self._nouns = frozenset(nouns)
            logger.debug("Seed nouns to ignore: %s", sorted(self._nouns))
        return self._nouns


class StatementDecoder:
    """Lazily decodes a statement; see module docstring."""

    def __init__(
        self,
        statement: str,
        tagger: Tagger | None = None,
        entity_service: EntityService | None = None,
        seed_texts: list[str] | None = None,
        seed_nouns: SeedNouns | None = None,
    ):
        self._statement = statement
        self.tagger: Tagger = tagger or NltkTagger()
        self.entity_service = entity_service
        self.seed_nouns = seed_nouns or SeedNouns(seed_texts)
        self._reset_cache()

    def _reset_cache(self) -> None:
        self._tagged_words: list[tuple[str, str]] | None = None
        self._nouns: list[str] | None = None
        self._numbers: list[str] | None = None
        self._entities: list[NamedEntity] | None = None

    @property
    def statement(self) -> str:
        return self._statement

    def modify_statement(self, statement: str) -> None:
        """Replace the statement; every cached view is invalidated together."""
        self._statement = statement
        self._reset_cache()

    def clone(self, statement: str) -> "StatementDecoder":
        """Independent decoder for another statement with an empty cache."""
        return StatementDecoder(
            statement,
            tagger=self.tagger,
            entity_service=self.entity_service,
            seed_nouns=self.seed_nouns,
        )

    def nouns_to_ignore(self) -> frozenset[str]:
        return self.seed_nouns.get(self.tagger)

    def tagged_words(self) -> list[tuple[str, str]]:
        if self._tagged_words is None:
            self._tagged_words = self.tagger.tag(self._statement)
        return self._tagged_words

    async def nouns(self) -> list[str]:
        """Distinct NN/NNP tokens in statement order, minus seed nouns."""
        if self._nouns is None:
            ignore = self.nouns_to_ignore()
            nouns: list[str] = []
            for word, tag in self.tagged_words():
                if tag in NOUN_TAGS and word not in nouns and word.lower() not in ignore:
                    nouns.append(word)
            logger.debug("Nouns in '%s': %s", self._statement, nouns)
            self._nouns = nouns
        return list(self._nouns)

    async def numbers(self) -> list[str]:
        """Distinct CD tokens that start on a word boundary in the statement."""
        if self._numbers is None:
            numbers: list[str] = []
            for word, tag in self.tagged_words():
                if tag != NUMBER_TAG or word in numbers:
                    continue
                # A digit run glued to letters (e.g. "x10y") is part of another token.
                if re.search(r"(?<!\w)" + re.escape(word), self._statement):
                    numbers.append(word)
            logger.debug("Numbers in '%s': %s", self._statement, numbers)
            self._numbers = numbers
        return list(self._numbers)

    async def named_entities(self) -> list[NamedEntity]:
        if self._entities is None:
            if self.entity_service is None:
                raise ConfigurationError(
                    "The entity service has not been configured; entities cannot be retrieved."
                )
            self._entities = await self.entity_service.extract_entities(self._statement)
        return list(self._entities)

    async def entities(self, entity_type: str) -> list[str]:
        """Texts of the entities of the given type, in service order."""
        found = [e.text for e in await self.named_entities() if e.type == entity_type]
        logger.debug("Entities of type %s in '%s': %s", entity_type, self._statement, found)
        return found

    async def city_entities(self) -> list[str]:
        return await self.entities(CITY_ENTITY_TYPE)
