"""Client for the OMDb movie catalog API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..models import CatalogItem, CatalogSummary, SearchPage

logger = logging.getLogger(__name__)


class CatalogError(RuntimeError):
    """Base error raised by the catalog client."""


class CatalogNotConfiguredError(CatalogError):
    """Raised when the catalog is used without an API key."""

    def __init__(self) -> None:
        super().__init__("OMDb API key not configured (OMDB_API_KEY)")


class CatalogRequestError(CatalogError):
    """Raised when OMDb answers with an unusable response."""


class OMDbClient:
    """Thin wrapper around the OMDb HTTP API.

    The API key is injected once at construction time; ``has_api_key`` lets
    callers check the capability before issuing any request.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._api_key = settings.omdb_api_key or ""
        self._client = http_client

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    async def search(self, keyword: str, page: int = 1) -> SearchPage:
        """Run a keyword search restricted to movies."""

        payload = await self._get({"s": keyword, "type": "movie", "page": page})
        if not self._is_positive(payload):
            return SearchPage(ok=False, error=self._error_text(payload))

        raw_items = payload.get("Search")
        if not isinstance(raw_items, list):
            raw_items = []
        items: list[CatalogSummary] = []
        for entry in raw_items:
            if not isinstance(entry, dict):
                continue
            try:
                items.append(CatalogSummary.model_validate(entry))
            except ValidationError:
                logger.debug("Skipping malformed OMDb search entry: %s", entry)
        total = self._parse_total(payload.get("totalResults"))
        return SearchPage(items=items, ok=True, total=total or len(items))

    async def fetch_detail(self, imdb_id: str) -> CatalogItem | None:
        """Fetch the full record for ``imdb_id``.

        Returns ``None`` when OMDb answers with a negative response.
        """

        payload = await self._get({"i": imdb_id, "plot": "short"})
        if not self._is_positive(payload):
            logger.debug(
                "OMDb lookup for %s returned no match: %s",
                imdb_id,
                self._error_text(payload),
            )
            return None
        try:
            return CatalogItem.model_validate(payload)
        except ValidationError as exc:
            raise CatalogRequestError(f"Malformed OMDb record for {imdb_id}") from exc

    async def _get(self, params: dict[str, Any]) -> dict[str, Any]:
        if not self._api_key:
            raise CatalogNotConfiguredError()

        response = await self._client.get(
            "/", params={"apikey": self._api_key, **params}
        )
        if response.status_code >= 400:
            raise CatalogRequestError(
                f"OMDb request failed with status {response.status_code}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise CatalogRequestError("Unexpected non-JSON OMDb response") from exc
        if not isinstance(data, dict):
            raise CatalogRequestError("Unexpected OMDb response structure")
        return data

    @staticmethod
    def _is_positive(payload: dict[str, Any]) -> bool:
        return str(payload.get("Response", "")).lower() == "true"

    @staticmethod
    def _error_text(payload: dict[str, Any]) -> str | None:
        error = payload.get("Error")
        return str(error) if error else None

    @staticmethod
    def _parse_total(value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0
