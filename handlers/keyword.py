"""Keyword and generic entity handlers: literal match against the known values."""

from __future__ import annotations

import logging

from decoding.decoder import StatementDecoder
from handlers.base import BaseTypeHandler
from shared.text_utils import find_in_statement

logger = logging.getLogger(__name__)


def first_value_in_statement(statement: str, candidate_values: list[str]) -> str | None:
    """The first value, in list order, that occurs literally in the statement."""
    for value in candidate_values or []:
        if find_in_statement(statement, value):
            return value
    return None


class EntityHandler(BaseTypeHandler):
    type_name = "entity"

    async def extract_value(
        self, statement: str, decoder: StatementDecoder, candidate_values: list[str]
    ) -> str | None:
        value = first_value_in_statement(statement, candidate_values)
        logger.debug("%s value from '%s': %s", self.type_name, statement, value)
        return value

    async def get_candidates(self, statement: str, decoder: StatementDecoder) -> list[str]:
        return await decoder.nouns()


class KeywordHandler(EntityHandler):
    """Keywords come from a closed vocabulary, so nouns are always fuzzy matched."""

    type_name = "keyword"
    fuzzy_by_default = True
