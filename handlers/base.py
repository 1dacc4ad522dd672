"""
Handler contracts — what a parameter type handler can do.

Every handler extracts values. Handlers that can also propose loose
candidates (for fuzzy disambiguation) implement `get_candidates`; the engine
detects that capability structurally, never by type name.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from decoding.decoder import StatementDecoder


@runtime_checkable
class ValueExtractor(Protocol):
    """Mandatory capability: pull one value for a slot out of a statement."""

    async def extract_value(
        self,
        statement: str,
        decoder: "StatementDecoder",
        candidate_values: list[str],
    ) -> str | None:
        ...


@runtime_checkable
class CandidateProvider(Protocol):
    """Optional capability: loose guesses used as fuzzy-match queries."""

    async def get_candidates(self, statement: str, decoder: "StatementDecoder") -> list[str]:
        ...


class BaseTypeHandler:
    """Defaults shared by the built-in handlers."""

    type_name: str = ""
    # Candidates are fuzzy matched even without an authoritative value list.
    fuzzy_by_default: bool = False
    # The interactive fallback accepts any reply verbatim.
    accepts_free_text: bool = False

    async def extract_value(
        self,
        statement: str,
        decoder: "StatementDecoder",
        candidate_values: list[str],
    ) -> str | None:
        raise NotImplementedError


def supports_candidates(handler: object) -> bool:
    return isinstance(handler, CandidateProvider)


def is_fuzzy_by_default(handler: object) -> bool:
    return bool(getattr(handler, "fuzzy_by_default", False))


def accepts_free_text(handler: object) -> bool:
    return bool(getattr(handler, "accepts_free_text", False))
