"""Tests for genre keyword lookup and preference parsing."""

from __future__ import annotations

import random

import pytest

from app.genres import (
    DEFAULT_GENRES,
    GENRE_SEARCH_TERMS,
    genre_matches,
    normalise_genres,
    parse_genre_preferences,
    pick_search_term,
    search_terms_for,
)


def test_every_default_genre_has_search_terms() -> None:
    assert len(DEFAULT_GENRES) == 10
    assert set(DEFAULT_GENRES) == set(GENRE_SEARCH_TERMS)


def test_unknown_genre_falls_back_to_lowercased_name() -> None:
    assert search_terms_for("Western") == ("western",)


def test_pick_search_term_uses_known_keywords() -> None:
    rng = random.Random(7)
    picks = {pick_search_term("Sci-Fi", rng) for _ in range(50)}

    assert picks <= set(GENRE_SEARCH_TERMS["Sci-Fi"])
    assert len(picks) > 1


@pytest.mark.parametrize(
    "raw",
    ['["Action","Horror"]', ["Action", "Horror"], ("Action", "Horror")],
)
def test_parse_genre_preferences_normalises_representations(raw) -> None:
    """JSON strings and structured sequences produce the same genre list."""

    assert parse_genre_preferences(raw) == ["Action", "Horror"]


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "{}",
        "not json",
        "[]",
        '{"genres": ["Action"]}',
        42,
        '[1, 2]',
        "[" * 200000 + "]" * 200000,
    ],
)
def test_parse_genre_preferences_rejects_unusable_values(raw) -> None:
    assert parse_genre_preferences(raw) is None


def test_normalise_genres_deduplicates_in_order() -> None:
    assert normalise_genres([" Drama", "Comedy", "Drama", "", None, "Comedy"]) == [
        "Drama",
        "Comedy",
    ]


def test_genre_matches_is_case_insensitive_substring() -> None:
    assert genre_matches("Comedy, Romance", ["comedy"]) is True
    assert genre_matches("Action, Sci-Fi", ["Horror", "sci-fi"]) is True
    assert genre_matches("Drama", ["Comedy"]) is False
    assert genre_matches(None, ["Comedy"]) is False
