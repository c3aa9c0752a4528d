"""SQLAlchemy ORM models mirroring the hosted profile schema."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class UserInfo(Base):
    """A registered user keyed by email."""

    __tablename__ = "user_info"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    user_name: Mapped[str] = mapped_column(String(255))
    first_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)


class MoviePreference(Base):
    """Per-user settings; ``preferences`` holds a JSON-encoded genre list."""

    __tablename__ = "movie_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("user_info.id", ondelete="CASCADE"), unique=True
    )
    child_account: Mapped[bool] = mapped_column(Boolean, default=False)
    movies_watched_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    preferences: Mapped[str | None] = mapped_column(Text, nullable=True)


class Movie(Base):
    """A title a user has recorded as watched."""

    __tablename__ = "movies"

    movie_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255))
    released: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    imdb_id: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)


class UserWatchedMovie(Base):
    """Join table between users and watched movies."""

    __tablename__ = "user_watched_movies"
    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="uq_user_watched_movie"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("user_info.id", ondelete="CASCADE")
    )
    movie_id: Mapped[int] = mapped_column(
        ForeignKey("movies.movie_id", ondelete="CASCADE")
    )
    watched_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
