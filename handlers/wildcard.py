from __future__ import annotations

from decoding.decoder import StatementDecoder
from handlers.base import BaseTypeHandler


class WildcardHandler(BaseTypeHandler):
    """Never extracts; the user's whole reply becomes the value."""

    type_name = "wildcard"
    accepts_free_text = True

    async def extract_value(
        self, statement: str, decoder: StatementDecoder, candidate_values: list[str]
    ) -> str | None:
        return None
