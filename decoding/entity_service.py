"""
EntityServiceClient — HTTP client for the named-entity backend.

Responsibility:
- POST a statement to the entity endpoint and parse the entity list
- Map transport / status / payload failures to ExternalServiceError

Prohibitions:
- No retries or backoff (callers decide)
- No caching (the decoder memoizes per statement version)
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from shared.errors import ExternalServiceError
from shared.models import NamedEntity
from shared.settings import ResolverSettings

logger = logging.getLogger(__name__)


class EntityService(Protocol):
    async def extract_entities(self, text: str) -> list[NamedEntity]:
        ...


class EntityServiceClient:
    """Generic client for a remote entity-extraction endpoint (POST /entities)."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        dataset: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.dataset = dataset
        self.timeout = timeout
        self._transport = transport
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"

    @classmethod
    def from_settings(cls, settings: ResolverSettings) -> "EntityServiceClient | None":
        if not settings.entity_service_configured:
            logger.warning(
                "Entity service is not configured; set ENTITY_SERVICE_URL to enable city/entity lookups."
            )
            return None
        return cls(
            base_url=settings.entity_service_url or "",
            api_key=settings.entity_service_api_key,
            dataset=settings.entity_service_dataset,
            timeout=settings.entity_service_timeout_seconds,
        )

    async def extract_entities(self, text: str) -> list[NamedEntity]:
        """
        Extract named entities from text.
        POST /entities  {"text": ..., "dataset": ...}
        """
        url = f"{self.base_url}/entities"
        payload: dict[str, Any] = {"text": text}
        if self.dataset:
            payload["dataset"] = self.dataset

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=self.headers)
        except httpx.HTTPError as e:
            logger.error("Network error calling entity service '%s': %r", url, e)
            raise ExternalServiceError(f"Entity service unreachable: {e}") from e

        if response.status_code != 200:
            logger.error("Entity service error %s: %s", response.status_code, response.text)
            raise ExternalServiceError(f"Entity service returned status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalServiceError("Entity service returned invalid JSON") from e

        return self._parse_entities(data)

    def _parse_entities(self, data: Any) -> list[NamedEntity]:
        raw_entities = data.get("entities", []) if isinstance(data, dict) else data
        if not isinstance(raw_entities, list):
            raise ExternalServiceError("Entity service payload has no entity list")

        entities: list[NamedEntity] = []
        for item in raw_entities:
            if not isinstance(item, dict):
                continue
            try:
                entities.append(
                    NamedEntity(
                        type=str(item.get("type", "")),
                        text=str(item.get("text", "")),
                        relevance=item.get("relevance", 0.0) or 0.0,
                        metadata={
                            k: v for k, v in item.items() if k not in ("type", "text", "relevance")
                        },
                    )
                )
            except ValidationError as e:
                logger.warning("Skipping malformed entity %r: %s", item, e)
        return entities
