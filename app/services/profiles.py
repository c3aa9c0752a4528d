"""User profile operations built on the profile store collections."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Sequence

from ..genres import DEFAULT_GENRES, normalise_genres, parse_genre_preferences
from ..models import WatchedMovie, WatchRequest, WatchResult
from ..utils import year_from_release
from .omdb import OMDbClient
from .profile_store import ProfileStore, ProfileStoreError

logger = logging.getLogger(__name__)

USERS = "user_info"
PREFERENCES = "movie_preferences"
MOVIES = "movies"
WATCHED = "user_watched_movies"


class ProfileError(Exception):
    """Base error raised by profile operations."""


class UserNotFoundError(ProfileError):
    def __init__(self, email: str):
        super().__init__(f"user_info row not found for {email}")
        self.email = email


class ProfileService:
    """Signup, preference and watch-history operations keyed by email."""

    def __init__(self, store: ProfileStore, catalog: OMDbClient | None = None):
        self._store = store
        self._catalog = catalog

    async def signup(
        self,
        email: str,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> dict[str, Any]:
        """Create the user row and its empty preference row."""

        email = (email or "").strip()
        if not email:
            raise ProfileError("email required")

        created = await self._store.insert(
            USERS,
            [
                {
                    "user_name": email,
                    "first_name": first_name or None,
                    "last_name": last_name or None,
                    "email": email,
                }
            ],
        )
        user = created[0] if created else None
        if not user or not user.get("id"):
            raise ProfileStoreError("Could not create user_info row")

        await self._store.upsert(
            PREFERENCES,
            [
                {
                    "user_id": user["id"],
                    "child_account": False,
                    "movies_watched_id": None,
                    "preferences": json.dumps({}),
                }
            ],
            on_conflict="user_id",
        )
        logger.info("Registered profile %s", user["id"])
        return user

    async def find_user_id(self, email: str) -> int | None:
        rows = await self._store.select(
            USERS, columns=["id"], filters={"email": email}, limit=1
        )
        if not rows or not rows[0].get("id"):
            return None
        return rows[0]["id"]

    async def _require_user_id(self, email: str) -> int:
        user_id = await self.find_user_id(email)
        if user_id is None:
            raise UserNotFoundError(email)
        return user_id

    async def _stored_preferences(self, user_id: int) -> Any:
        rows = await self._store.select(
            PREFERENCES,
            columns=["preferences"],
            filters={"user_id": user_id},
            limit=1,
        )
        if not rows:
            return None
        return rows[0].get("preferences")

    async def get_preferences(self, email: str) -> list[str]:
        """Return the stored genre list, empty when nothing usable is saved."""

        user_id = await self._require_user_id(email)
        return parse_genre_preferences(await self._stored_preferences(user_id)) or []

    async def resolve_genres(self, email: str | None) -> list[str]:
        """Return the user's genres for recommendations.

        Any lookup failure falls back to the default genre list.
        """

        if not email:
            return list(DEFAULT_GENRES)
        try:
            user_id = await self.find_user_id(email)
            if user_id is None:
                return list(DEFAULT_GENRES)
            raw = await self._stored_preferences(user_id)
        except ProfileStoreError as exc:
            logger.warning("Falling back to default genres for %s: %s", email, exc)
            return list(DEFAULT_GENRES)
        return parse_genre_preferences(raw) or list(DEFAULT_GENRES)

    async def save_preferences(self, email: str, genres: Sequence[str]) -> list[str]:
        """Replace the stored genre list."""

        user_id = await self._require_user_id(email)
        cleaned = normalise_genres(genres)
        await self._store.upsert(
            PREFERENCES,
            [{"user_id": user_id, "preferences": json.dumps(cleaned)}],
            on_conflict="user_id",
        )
        return cleaned

    async def set_child_account(self, email: str, child_account: bool) -> None:
        user_id = await self._require_user_id(email)
        await self._store.upsert(
            PREFERENCES,
            [{"user_id": user_id, "child_account": child_account}],
            on_conflict="user_id",
        )

    async def add_watched(self, email: str, movie: WatchRequest) -> WatchResult:
        """Record ``movie`` as watched, reusing an existing movies row."""

        user_id = await self._require_user_id(email)
        movie_id = await self._find_movie_id(movie)
        if movie_id is None:
            movie_id = await self._insert_movie(movie)

        existing = await self._store.select(
            WATCHED,
            columns=["id"],
            filters={"user_id": user_id, "movie_id": movie_id},
            limit=1,
        )
        if existing:
            return WatchResult(movie_id=movie_id, already_watched=True)

        await self._store.insert(WATCHED, [{"user_id": user_id, "movie_id": movie_id}])
        return WatchResult(movie_id=movie_id)

    async def _find_movie_id(self, movie: WatchRequest) -> int | None:
        if movie.imdb_id:
            rows = await self._store.select(
                MOVIES, columns=["movie_id"], filters={"imdb_id": movie.imdb_id}, limit=1
            )
            if rows:
                return rows[0]["movie_id"]
        return await self._find_movie_by_title(movie)

    async def _find_movie_by_title(self, movie: WatchRequest) -> int | None:
        rows = await self._store.select(
            MOVIES,
            columns=["movie_id"],
            filters={"title": movie.title, "released": movie.released},
            limit=1,
        )
        return rows[0]["movie_id"] if rows else None

    async def _insert_movie(self, movie: WatchRequest) -> int:
        try:
            inserted = await self._store.insert(
                MOVIES,
                [
                    {
                        "title": movie.title,
                        "released": movie.released,
                        "description": movie.description,
                        "imdb_id": movie.imdb_id,
                    }
                ],
            )
        except ProfileStoreError:
            # Another client may have inserted the same title concurrently.
            movie_id = await self._find_movie_by_title(movie)
            if movie_id is None:
                raise
            return movie_id
        if not inserted or inserted[0].get("movie_id") is None:
            raise ProfileStoreError("Could not determine movie_id")
        return inserted[0]["movie_id"]

    async def list_watched(self, email: str) -> list[WatchedMovie]:
        """Return watched titles, most recent first."""

        user_id = await self._require_user_id(email)
        rows = await self._store.select(
            WATCHED,
            columns=["id", "movie_id", "watched_at"],
            filters={"user_id": user_id},
            order_by="watched_at",
            descending=True,
        )

        watched: list[WatchedMovie] = []
        for row in rows:
            movies = await self._store.select(
                MOVIES, filters={"movie_id": row.get("movie_id")}, limit=1
            )
            movie = movies[0] if movies else {}
            released = movie.get("released")
            watched.append(
                WatchedMovie(
                    title=movie.get("title") or "",
                    year=year_from_release(released),
                    imdb_id=movie.get("imdb_id"),
                    movie_id=movie.get("movie_id"),
                    watched_at=row.get("watched_at"),
                    description=movie.get("description"),
                )
            )
        return await self._enrich_from_catalog(watched)

    async def _enrich_from_catalog(self, watched: list[WatchedMovie]) -> list[WatchedMovie]:
        catalog = self._catalog
        if catalog is None or not catalog.has_api_key:
            return watched
        targets = [entry for entry in watched if entry.imdb_id]
        if not targets:
            return watched

        details = await asyncio.gather(
            *(catalog.fetch_detail(entry.imdb_id) for entry in targets),
            return_exceptions=True,
        )
        by_id: dict[str, Any] = {}
        for entry, detail in zip(targets, details):
            if isinstance(detail, Exception):
                logger.debug("Catalog enrichment failed for %s: %s", entry.imdb_id, detail)
                continue
            if detail is not None:
                by_id[entry.imdb_id] = detail

        enriched: list[WatchedMovie] = []
        for entry in watched:
            info = by_id.get(entry.imdb_id or "")
            if info is None:
                enriched.append(entry)
                continue
            enriched.append(
                entry.model_copy(
                    update={
                        "title": info.title or entry.title,
                        "year": info.year or entry.year,
                        "poster": info.poster or entry.poster,
                    }
                )
            )
        return enriched

    async def is_watched(
        self,
        email: str,
        *,
        imdb_id: str | None = None,
        movie_id: int | None = None,
    ) -> bool:
        user_id = await self._require_user_id(email)
        resolved = movie_id
        if resolved is None and imdb_id:
            rows = await self._store.select(
                MOVIES, columns=["movie_id"], filters={"imdb_id": imdb_id}, limit=1
            )
            if not rows:
                return False
            resolved = rows[0]["movie_id"]
        if resolved is None:
            return False

        existing = await self._store.select(
            WATCHED,
            columns=["id"],
            filters={"user_id": user_id, "movie_id": resolved},
            limit=1,
        )
        return bool(existing)

