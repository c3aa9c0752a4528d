"""Known genres and the search keywords used to discover them."""

from __future__ import annotations

import json
import random
from typing import Any, Iterable


DEFAULT_GENRES: tuple[str, ...] = (
    "Action",
    "Comedy",
    "Drama",
    "Sci-Fi",
    "Romance",
    "Horror",
    "Thriller",
    "Family",
    "Animation",
    "Documentary",
)

# OMDb has no genre filter, so genres are discovered through keyword searches
# that tend to surface titles of that genre.
GENRE_SEARCH_TERMS: dict[str, tuple[str, ...]] = {
    "Action": ("action", "adventure", "fight", "hero"),
    "Comedy": ("comedy", "funny", "laugh"),
    "Drama": ("drama", "story"),
    "Sci-Fi": ("space", "future", "alien", "robot"),
    "Romance": ("love", "romance", "romantic"),
    "Horror": ("horror", "scary", "zombie"),
    "Thriller": ("thriller", "suspense", "mystery"),
    "Family": ("family", "kids", "children"),
    "Animation": ("animation", "animated", "cartoon"),
    "Documentary": ("documentary", "true", "history"),
}


def search_terms_for(genre: str) -> tuple[str, ...]:
    """Return the search keywords for a genre, falling back to its name."""

    return GENRE_SEARCH_TERMS.get(genre) or (genre.lower(),)


def pick_search_term(genre: str, rng: random.Random | None = None) -> str:
    """Pick one keyword for ``genre`` uniformly at random."""

    chooser = rng or random
    return chooser.choice(search_terms_for(genre))


def normalise_genres(values: Iterable[Any]) -> list[str]:
    """Return non-blank genre names, de-duplicated in their original order."""

    cleaned: list[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        name = value.strip()
        if name and name not in cleaned:
            cleaned.append(name)
    return cleaned


def parse_genre_preferences(raw: Any) -> list[str] | None:
    """Decode a stored preference value into a genre list.

    Preferences are stored as a JSON-encoded string but older rows (and some
    clients) hand over the already-decoded list. Returns ``None`` when the
    value does not describe a usable list of genres.
    """

    if raw is None:
        return None
    parsed = raw
    if isinstance(parsed, (bytes, bytearray)):
        parsed = parsed.decode("utf-8", errors="ignore")
    if isinstance(parsed, str):
        try:
            parsed = json.loads(parsed)
        except (ValueError, RecursionError):
            return None
    if not isinstance(parsed, (list, tuple)):
        return None
    genres = normalise_genres(parsed)
    return genres or None


def genre_matches(genre_text: str | None, genres: Iterable[str]) -> bool:
    """Return whether any requested genre occurs in the catalog genre text."""

    haystack = (genre_text or "").lower()
    if not haystack:
        return False
    return any(genre.lower() in haystack for genre in genres)
