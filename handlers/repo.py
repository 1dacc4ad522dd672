"""Repository handlers: regex extraction from the raw statement, no candidates."""

from __future__ import annotations

import re

from decoding.decoder import StatementDecoder
from handlers.base import BaseTypeHandler


class RegexHandler(BaseTypeHandler):
    pattern: re.Pattern[str]
    group: int = 1

    async def extract_value(
        self, statement: str, decoder: StatementDecoder, candidate_values: list[str]
    ) -> str | None:
        match = self.pattern.search(statement)
        if match is None:
            return None
        return match.group(self.group) or None


class RepoNameHandler(RegexHandler):
    """`owner/name` anywhere after the first word; the value is the repo name."""

    type_name = "reponame"
    pattern = re.compile(r"(.*)\s+(\w+)/(\S+)")
    group = 3


class RepoUrlHandler(RegexHandler):
    type_name = "repourl"
    pattern = re.compile(r"(.*)\s+(https?://\S+)")
    group = 2
