from app.models import CatalogItem, CatalogSummary, PreferencesPayload, WatchRequest


def test_catalog_item_parses_omdb_payload():
    item = CatalogItem.model_validate(
        {
            "Title": "When Harry Met Sally...",
            "Year": "1989",
            "Genre": "Comedy, Drama, Romance",
            "Poster": "N/A",
            "imdbID": "tt0098635",
            "Response": "True",
        }
    )

    assert item.imdb_id == "tt0098635"
    assert item.poster is None
    assert item.genre == "Comedy, Drama, Romance"


def test_catalog_item_serialises_with_omdb_names():
    item = CatalogItem(imdbID="tt1", Title="Heat", Genre="Crime")

    payload = item.model_dump(by_alias=True)

    assert payload["imdbID"] == "tt1"
    assert payload["Genre"] == "Crime"


def test_catalog_summary_allows_missing_id():
    summary = CatalogSummary.model_validate({"Title": "Untitled", "imdbID": "N/A"})

    assert summary.imdb_id is None


def test_watch_request_accepts_omdb_and_snake_case_fields():
    from_omdb = WatchRequest.model_validate(
        {"Title": "Alien", "Released": "22 Jun 1979", "Plot": "In space.", "imdbID": "tt0078748"}
    )
    from_rows = WatchRequest.model_validate(
        {"title": "Alien", "released": "22 Jun 1979", "description": "In space.", "imdb_id": "tt0078748"}
    )

    assert from_omdb == from_rows


def test_watch_request_defaults_blank_title():
    assert WatchRequest.model_validate({"Title": " "}).title == "Unknown"


def test_preferences_payload_accepts_legacy_key():
    assert PreferencesPayload.model_validate({"preferences": ["Drama"]}).genres == ["Drama"]
