from __future__ import annotations

import logging

from decoding.decoder import StatementDecoder
from handlers.base import BaseTypeHandler
from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)


class CityHandler(BaseTypeHandler):
    """A city is resolved only when the entity service finds exactly one."""

    type_name = "city"

    async def _cities(self, decoder: StatementDecoder) -> list[str]:
        try:
            return await decoder.city_entities()
        except ConfigurationError as e:
            logger.warning("City lookup skipped: %s", e)
            return []

    async def extract_value(
        self, statement: str, decoder: StatementDecoder, candidate_values: list[str]
    ) -> str | None:
        cities = await self._cities(decoder)
        if len(cities) == 1:
            return cities[0]
        if cities:
            logger.debug("Ambiguous cities in '%s': %s", statement, cities)
        return None

    async def get_candidates(self, statement: str, decoder: StatementDecoder) -> list[str]:
        return await self._cities(decoder)
