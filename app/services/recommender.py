"""Genre-driven recommendation feed built from catalog keyword searches."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Sequence

from ..genres import genre_matches, normalise_genres, pick_search_term
from ..models import CatalogItem, RecommendationResult
from .omdb import OMDbClient

logger = logging.getLogger(__name__)

DEFAULT_TARGET_COUNT = 15
ATTEMPTS_PER_GENRE = 3
CANDIDATES_PER_SEARCH = 3
SEARCH_PAGES = (1, 2, 3)
DETAIL_FETCH_INTERVAL = 0.1

NOT_CONFIGURED_MESSAGE = (
    "OMDb API key not configured. Set `OMDB_API_KEY` to enable recommendations."
)
NO_MATCHES_MESSAGE = (
    "No movies found matching your preferences. Try adjusting your genre preferences."
)


class IntervalGate:
    """Fixed-interval gate spacing out successive catalog requests."""

    def __init__(self, interval: float = DETAIL_FETCH_INTERVAL):
        if interval < 0:
            raise ValueError("interval must not be negative")
        self.interval = interval

    async def wait(self) -> None:
        if self.interval:
            await asyncio.sleep(self.interval)
        else:
            await asyncio.sleep(0)


class CancellationToken:
    """Per-pass flag marking an aggregation as abandoned."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class RecommendationAggregator:
    """Collects catalog items whose genres overlap a preference list.

    OMDb cannot filter by genre, so each attempt picks a genre in rotation,
    searches one of its keywords on a random page and keeps the detail
    records whose genre text mentions any preferred genre.
    """

    def __init__(
        self,
        catalog: OMDbClient,
        *,
        target_count: int = DEFAULT_TARGET_COUNT,
        gate: IntervalGate | None = None,
        rng: random.Random | None = None,
    ):
        if target_count < 1:
            raise ValueError("target_count must be positive")
        self._catalog = catalog
        self._configured = catalog.has_api_key
        self._target_count = target_count
        self._gate = gate or IntervalGate()
        self._rng = rng or random.Random()
        if not self._configured:
            logger.warning("OMDb API key missing; recommendations are disabled")

    @property
    def configured(self) -> bool:
        return self._configured

    @property
    def target_count(self) -> int:
        return self._target_count

    async def aggregate(
        self,
        genres: Sequence[str],
        token: CancellationToken | None = None,
    ) -> RecommendationResult:
        """Run one aggregation pass for ``genres``."""

        token = token or CancellationToken()
        requested = normalise_genres(genres)
        if not requested:
            return RecommendationResult(status="no_matches", genres=[])
        if not self._configured:
            return RecommendationResult(
                status="not_configured",
                message=NOT_CONFIGURED_MESSAGE,
                genres=requested,
            )

        collected: list[CatalogItem] = []
        seen: set[str] = set()
        attempts = 0
        max_attempts = len(requested) * ATTEMPTS_PER_GENRE

        while len(collected) < self._target_count and attempts < max_attempts:
            if token.cancelled:
                return self._cancelled(requested, attempts)
            attempts += 1
            genre = requested[attempts % len(requested)]
            keyword = genre
            try:
                keyword = pick_search_term(genre, self._rng)
                page = self._rng.choice(SEARCH_PAGES)
                results = await self._catalog.search(keyword, page)
                if token.cancelled:
                    return self._cancelled(requested, attempts)
                if not results.ok:
                    continue

                for summary in results.items[:CANDIDATES_PER_SEARCH]:
                    if len(collected) >= self._target_count:
                        break
                    if not summary.imdb_id or summary.imdb_id in seen:
                        continue

                    detail = await self._fetch_candidate(summary.imdb_id)
                    if token.cancelled:
                        return self._cancelled(requested, attempts)
                    if detail is not None and genre_matches(detail.genre, requested):
                        seen.add(summary.imdb_id)
                        collected.append(detail)

                    await self._gate.wait()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Error searching for %s: %s", keyword, exc)

        if token.cancelled:
            return self._cancelled(requested, attempts)
        if not collected:
            return RecommendationResult(
                status="no_matches",
                message=NO_MATCHES_MESSAGE,
                genres=requested,
                attempts=attempts,
            )
        return RecommendationResult(items=collected, genres=requested, attempts=attempts)

    async def _fetch_candidate(self, imdb_id: str) -> CatalogItem | None:
        try:
            return await self._catalog.fetch_detail(imdb_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Error fetching movie details for %s: %s", imdb_id, exc)
            return None

    @staticmethod
    def _cancelled(genres: list[str], attempts: int) -> RecommendationResult:
        return RecommendationResult(status="cancelled", genres=genres, attempts=attempts)


class RecommendationFeed:
    """Caller-side state that only ever reflects the most recent pass.

    Meant for in-process callers that keep a feed alive across refreshes.
    The HTTP routes are stateless and call the aggregator directly.
    """

    def __init__(self, aggregator: RecommendationAggregator):
        self._aggregator = aggregator
        self._token: CancellationToken | None = None
        self.items: list[CatalogItem] = []
        self.status: str | None = None
        self.message: str | None = None
        self.loading = False

    async def refresh(self, genres: Sequence[str]) -> RecommendationResult:
        """Start a new pass, superseding any pass still in flight."""

        self.cancel()
        token = CancellationToken()
        self._token = token
        self.loading = True
        if not self._aggregator.configured:
            self.message = NOT_CONFIGURED_MESSAGE
        else:
            self.message = None

        try:
            result = await self._aggregator.aggregate(genres, token)
        finally:
            if self._token is token and not token.cancelled:
                self.loading = False

        if self._token is token and not token.cancelled:
            self.items = list(result.items)
            self.status = result.status
            self.message = result.message
            self._token = None
        return result

    def cancel(self) -> None:
        """Abandon the in-flight pass, if any."""

        if self._token is not None:
            self._token.cancel()
            self._token = None
            self.loading = False
