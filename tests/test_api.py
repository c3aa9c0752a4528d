"""HTTP routes exercised with in-memory collaborators."""

from __future__ import annotations

from typing import Any

import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import register_routes
from app.services.omdb import OMDbClient
from app.services.profiles import ProfileService
from app.services.recommender import RecommendationAggregator
from fakes import ImmediateGate, InMemoryProfileStore

DETAILS: dict[str, dict[str, Any]] = {
    "tt0098635": {
        "Title": "When Harry Met Sally...",
        "Year": "1989",
        "Genre": "Comedy, Drama, Romance",
        "imdbID": "tt0098635",
        "Poster": "https://img.example.com/harry.jpg",
        "Response": "True",
    },
    "tt0111161": {
        "Title": "The Shawshank Redemption",
        "Year": "1994",
        "Genre": "Drama",
        "imdbID": "tt0111161",
        "Response": "True",
    },
}


def omdb_handler(request: httpx.Request) -> httpx.Response:
    params = request.url.params
    if "s" in params:
        return httpx.Response(
            200,
            json={
                "Search": [
                    {"Title": entry["Title"], "imdbID": imdb_id, "Year": entry["Year"], "Type": "movie"}
                    for imdb_id, entry in DETAILS.items()
                ],
                "totalResults": str(len(DETAILS)),
                "Response": "True",
            },
        )
    entry = DETAILS.get(params.get("i", ""))
    if entry is None:
        return httpx.Response(200, json={"Response": "False", "Error": "Incorrect IMDb ID."})
    return httpx.Response(200, json=entry)


def build_app(*, api_key: str = "test-key") -> tuple[FastAPI, InMemoryProfileStore]:
    settings = Settings(_env_file=None, OMDB_API_KEY=api_key)
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(omdb_handler), base_url="https://omdb.example.com"
    )
    catalog = OMDbClient(settings, http_client)
    store = InMemoryProfileStore()

    app = FastAPI()
    register_routes(app)
    app.state.catalog = catalog
    app.state.profile_service = ProfileService(store, catalog)
    app.state.aggregator = RecommendationAggregator(catalog, gate=ImmediateGate())  # type: ignore[arg-type]
    return app, store


def test_healthcheck_and_genres() -> None:
    app, _ = build_app()
    with TestClient(app) as client:
        assert client.get("/healthz").json() == {"status": "ok"}
        genres = client.get("/api/genres").json()["genres"]

    assert genres[0] == "Action"
    assert len(genres) == 10


def test_search_and_detail_routes() -> None:
    app, _ = build_app()
    with TestClient(app) as client:
        search = client.get("/api/search", params={"q": "love"})
        found = client.get("/api/movies/tt0098635")
        missing = client.get("/api/movies/tt0000000")

    assert search.status_code == 200
    body = search.json()
    assert body["ok"] is True
    assert [item["imdbID"] for item in body["items"]] == ["tt0098635", "tt0111161"]
    assert found.json()["Genre"] == "Comedy, Drama, Romance"
    assert missing.status_code == 404


def test_search_without_api_key_reports_configuration_error() -> None:
    app, _ = build_app(api_key="")
    with TestClient(app) as client:
        response = client.get("/api/search", params={"q": "love"})

    assert response.status_code == 503
    assert "not configured" in response.json()["detail"]


def test_profile_routes_round_trip() -> None:
    app, store = build_app()
    with TestClient(app) as client:
        created = client.post("/api/users", json={"email": "fan@example.com"})
        saved = client.put(
            "/api/users/fan@example.com/preferences", json={"genres": ["Comedy", "Comedy"]}
        )
        loaded = client.get("/api/users/fan@example.com/preferences")
        watched = client.post(
            "/api/users/fan@example.com/watched",
            json={"Title": "When Harry Met Sally...", "imdbID": "tt0098635"},
        )
        listing = client.get("/api/users/fan@example.com/watched")
        check = client.get(
            "/api/users/fan@example.com/watched/check", params={"imdb_id": "tt0098635"}
        )
        child = client.put(
            "/api/users/fan@example.com/child-account", json={"child_account": True}
        )

    assert created.status_code == 201
    assert saved.json() == {"genres": ["Comedy"]}
    assert loaded.json() == {"genres": ["Comedy"]}
    assert watched.json()["already_watched"] is False
    movies = listing.json()["movies"]
    assert movies[0]["poster"] == "https://img.example.com/harry.jpg"
    assert check.json() == {"watched": True}
    assert child.status_code == 200
    assert store.tables["movie_preferences"][0]["child_account"] is True


def test_unknown_user_returns_404() -> None:
    app, _ = build_app()
    with TestClient(app) as client:
        response = client.get("/api/users/ghost@example.com/preferences")

    assert response.status_code == 404


def test_recommendations_use_saved_genres() -> None:
    app, _ = build_app()
    with TestClient(app) as client:
        client.post("/api/users", json={"email": "fan@example.com"})
        client.put("/api/users/fan@example.com/preferences", json={"genres": ["Comedy"]})
        response = client.get("/api/users/fan@example.com/recommendations")

    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "ok"
    assert body["genres"] == ["Comedy"]
    assert [item["imdbID"] for item in body["items"]] == ["tt0098635"]


def test_recommendations_without_api_key_report_not_configured() -> None:
    app, _ = build_app(api_key="")
    with TestClient(app) as client:
        response = client.get("/api/users/anyone@example.com/recommendations")

    body = response.json()
    assert body["status"] == "not_configured"
    assert body["items"] == []
