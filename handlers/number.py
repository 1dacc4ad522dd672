from __future__ import annotations

import logging

from decoding.decoder import StatementDecoder
from handlers.base import BaseTypeHandler

logger = logging.getLogger(__name__)


class NumberHandler(BaseTypeHandler):
    """Exactly one standalone number in the statement, otherwise nothing."""

    type_name = "number"

    async def extract_value(
        self, statement: str, decoder: StatementDecoder, candidate_values: list[str]
    ) -> str | None:
        numbers = await decoder.numbers()
        if len(numbers) == 1:
            return numbers[0]
        if numbers:
            logger.debug("Ambiguous numbers in '%s': %s", statement, numbers)
        return None
