"""Entry point for the FastAPI-powered movie discovery API."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import Database
from .genres import DEFAULT_GENRES
from .models import (
    CatalogItem,
    ChildAccountPayload,
    PreferencesPayload,
    RecommendationResult,
    SearchPage,
    SignupRequest,
    WatchedMovie,
    WatchRequest,
    WatchResult,
)
from .services.omdb import CatalogError, CatalogNotConfiguredError, OMDbClient
from .services.profile_store import (
    ProfileStore,
    ProfileStoreError,
    RestProfileStore,
    SqlProfileStore,
)
from .services.profiles import ProfileError, ProfileService, UserNotFoundError
from .services.recommender import RecommendationAggregator

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    catalog_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.omdb_api_url),
            timeout=httpx.Timeout(settings.catalog_timeout_seconds, connect=5.0),
        )
    )
    catalog = OMDbClient(settings, catalog_http_client)
    logger.info("OMDb API key present: %s", catalog.has_api_key)

    database: Database | None = None
    store: ProfileStore
    if settings.uses_remote_profile_store:
        store_http_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                base_url=str(settings.profile_store_url),
                timeout=httpx.Timeout(20.0, connect=10.0),
            )
        )
        store = RestProfileStore(store_http_client, settings.profile_store_key)
    else:
        logger.info("No profile store URL configured, using %s", settings.database_url)
        database = Database(settings.database_url)
        await database.create_all()
        store = SqlProfileStore(database.session_factory)

    fastapi_app.state.catalog = catalog
    fastapi_app.state.profile_service = ProfileService(store, catalog)
    fastapi_app.state.aggregator = RecommendationAggregator(
        catalog, target_count=settings.recommendation_target_count
    )

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        if database is not None:
            await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Genre-driven movie discovery backed by OMDb",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_catalog(app: FastAPI) -> OMDbClient:
    catalog = getattr(app.state, "catalog", None)
    if not isinstance(catalog, OMDbClient):
        raise RuntimeError("Catalog client not initialised")
    return catalog


def get_profile_service(app: FastAPI) -> ProfileService:
    service = getattr(app.state, "profile_service", None)
    if not isinstance(service, ProfileService):
        raise RuntimeError("Profile service not initialised")
    return service


def get_aggregator(app: FastAPI) -> RecommendationAggregator:
    aggregator = getattr(app.state, "aggregator", None)
    if not isinstance(aggregator, RecommendationAggregator):
        raise RuntimeError("Recommendation aggregator not initialised")
    return aggregator


def _profile_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, UserNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ProfileStoreError):
        logger.warning("Profile store failure: %s", exc)
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/genres")
    async def list_genres() -> dict[str, list[str]]:
        return {"genres": list(DEFAULT_GENRES)}

    @fastapi_app.get("/api/search")
    async def search(
        q: str = Query(..., min_length=1),
        page: int = Query(1, ge=1, le=100),
    ) -> SearchPage:
        catalog = get_catalog(fastapi_app)
        try:
            return await catalog.search(q.strip(), page)
        except CatalogNotConfiguredError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        except (CatalogError, httpx.HTTPError) as exc:
            logger.warning("Catalog search for %s failed: %s", q, exc)
            raise HTTPException(status_code=502, detail="Catalog search failed") from exc

    @fastapi_app.get("/api/movies/{imdb_id}")
    async def movie_detail(imdb_id: str) -> CatalogItem:
        catalog = get_catalog(fastapi_app)
        try:
            detail = await catalog.fetch_detail(imdb_id)
        except CatalogNotConfiguredError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        except (CatalogError, httpx.HTTPError) as exc:
            logger.warning("Catalog lookup for %s failed: %s", imdb_id, exc)
            raise HTTPException(status_code=502, detail="Catalog lookup failed") from exc
        if detail is None:
            raise HTTPException(status_code=404, detail=f"Movie {imdb_id} not found")
        return detail

    @fastapi_app.post("/api/users", status_code=201)
    async def signup(payload: SignupRequest) -> dict[str, Any]:
        service = get_profile_service(fastapi_app)
        try:
            user = await service.signup(
                payload.email,
                first_name=payload.first_name,
                last_name=payload.last_name,
            )
        except (ProfileError, ProfileStoreError) as exc:
            raise _profile_http_error(exc) from exc
        return {"user": user}

    @fastapi_app.get("/api/users/{email}/preferences")
    async def get_preferences(email: str) -> PreferencesPayload:
        service = get_profile_service(fastapi_app)
        try:
            genres = await service.get_preferences(email)
        except (ProfileError, ProfileStoreError) as exc:
            raise _profile_http_error(exc) from exc
        return PreferencesPayload(genres=genres)

    @fastapi_app.put("/api/users/{email}/preferences")
    async def save_preferences(email: str, payload: PreferencesPayload) -> PreferencesPayload:
        service = get_profile_service(fastapi_app)
        try:
            genres = await service.save_preferences(email, payload.genres)
        except (ProfileError, ProfileStoreError) as exc:
            raise _profile_http_error(exc) from exc
        return PreferencesPayload(genres=genres)

    @fastapi_app.put("/api/users/{email}/child-account")
    async def set_child_account(email: str, payload: ChildAccountPayload) -> ChildAccountPayload:
        service = get_profile_service(fastapi_app)
        try:
            await service.set_child_account(email, payload.child_account)
        except (ProfileError, ProfileStoreError) as exc:
            raise _profile_http_error(exc) from exc
        return payload

    @fastapi_app.get("/api/users/{email}/watched")
    async def list_watched(email: str) -> dict[str, list[WatchedMovie]]:
        service = get_profile_service(fastapi_app)
        try:
            movies = await service.list_watched(email)
        except (ProfileError, ProfileStoreError) as exc:
            raise _profile_http_error(exc) from exc
        return {"movies": movies}

    @fastapi_app.post("/api/users/{email}/watched")
    async def add_watched(email: str, payload: WatchRequest) -> WatchResult:
        service = get_profile_service(fastapi_app)
        try:
            return await service.add_watched(email, payload)
        except (ProfileError, ProfileStoreError) as exc:
            raise _profile_http_error(exc) from exc

    @fastapi_app.get("/api/users/{email}/watched/check")
    async def check_watched(
        email: str,
        imdb_id: str | None = None,
        movie_id: int | None = None,
    ) -> dict[str, bool]:
        service = get_profile_service(fastapi_app)
        try:
            watched = await service.is_watched(email, imdb_id=imdb_id, movie_id=movie_id)
        except (ProfileError, ProfileStoreError) as exc:
            raise _profile_http_error(exc) from exc
        return {"watched": watched}

    @fastapi_app.get("/api/users/{email}/recommendations")
    async def recommendations(email: str) -> RecommendationResult:
        service = get_profile_service(fastapi_app)
        aggregator = get_aggregator(fastapi_app)
        genres = await service.resolve_genres(email)
        return await aggregator.aggregate(genres)


app = create_app()
