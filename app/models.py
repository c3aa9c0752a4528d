"""Pydantic models describing catalog and profile payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .utils import strip_missing

RecommendationStatus = Literal["ok", "no_matches", "not_configured", "cancelled"]


class CatalogSummary(BaseModel):
    """A single hit from an OMDb keyword search."""

    model_config = ConfigDict(populate_by_name=True)

    imdb_id: str | None = Field(default=None, alias="imdbID")
    title: str = Field(default="", alias="Title")
    year: str | None = Field(default=None, alias="Year")
    type: str | None = Field(default=None, alias="Type")
    poster: str | None = Field(default=None, alias="Poster")

    @field_validator("imdb_id", "year", "type", "poster", mode="before")
    @classmethod
    def _clean_missing(cls, value: Any) -> Any:
        return strip_missing(value)


class Rating(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(alias="Source")
    value: str = Field(alias="Value")


class CatalogItem(BaseModel):
    """Full OMDb detail record for one title."""

    model_config = ConfigDict(populate_by_name=True)

    imdb_id: str = Field(alias="imdbID")
    title: str = Field(default="", alias="Title")
    year: str | None = Field(default=None, alias="Year")
    type: str | None = Field(default=None, alias="Type")
    poster: str | None = Field(default=None, alias="Poster")
    genre: str | None = Field(default=None, alias="Genre")
    plot: str | None = Field(default=None, alias="Plot")
    released: str | None = Field(default=None, alias="Released")
    runtime: str | None = Field(default=None, alias="Runtime")
    language: str | None = Field(default=None, alias="Language")
    director: str | None = Field(default=None, alias="Director")
    actors: str | None = Field(default=None, alias="Actors")
    imdb_rating: str | None = Field(default=None, alias="imdbRating")
    imdb_votes: str | None = Field(default=None, alias="imdbVotes")
    box_office: str | None = Field(default=None, alias="BoxOffice")
    production: str | None = Field(default=None, alias="Production")
    ratings: list[Rating] = Field(default_factory=list, alias="Ratings")

    @field_validator(
        "year",
        "type",
        "poster",
        "genre",
        "plot",
        "released",
        "runtime",
        "language",
        "director",
        "actors",
        "imdb_rating",
        "imdb_votes",
        "box_office",
        "production",
        mode="before",
    )
    @classmethod
    def _clean_missing(cls, value: Any) -> Any:
        return strip_missing(value)


class SearchPage(BaseModel):
    """One page of keyword search results."""

    items: list[CatalogSummary] = Field(default_factory=list)
    ok: bool = False
    total: int = 0
    error: str | None = None


class RecommendationResult(BaseModel):
    """Outcome of a single aggregation pass."""

    items: list[CatalogItem] = Field(default_factory=list)
    status: RecommendationStatus = "ok"
    message: str | None = None
    genres: list[str] = Field(default_factory=list)
    attempts: int = 0


class WatchedMovie(BaseModel):
    """A watched title shaped for display."""

    title: str = ""
    year: str = ""
    poster: str | None = None
    imdb_id: str | None = None
    movie_id: int | None = None
    watched_at: datetime | None = None
    description: str | None = None


class WatchResult(BaseModel):
    """Outcome of recording a watched title."""

    movie_id: int
    already_watched: bool = False


class SignupRequest(BaseModel):
    email: str
    first_name: str | None = None
    last_name: str | None = None

    @field_validator("email")
    @classmethod
    def _require_email(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("email required")
        return value


class PreferencesPayload(BaseModel):
    genres: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("genres", "preferences"),
    )


class ChildAccountPayload(BaseModel):
    child_account: bool


class WatchRequest(BaseModel):
    """Movie reference accepted when recording a watched title."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(
        default="Unknown", validation_alias=AliasChoices("title", "Title")
    )
    released: str | None = Field(
        default=None, validation_alias=AliasChoices("released", "Released")
    )
    description: str | None = Field(
        default=None,
        validation_alias=AliasChoices("description", "plot", "Plot"),
    )
    imdb_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("imdb_id", "imdbID", "imdbId"),
    )

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "Unknown"
        return value

    @field_validator("released", "description", "imdb_id", mode="before")
    @classmethod
    def _clean_missing(cls, value: Any) -> Any:
        return strip_missing(value)
