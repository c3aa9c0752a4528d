"""Collection-style access to the hosted profile store.

The profile store is a relational backend reached through point queries:
equality-filtered selects, inserts and upserts against named tables. Two
implementations share that contract. ``RestProfileStore`` talks to a
PostgREST (Supabase) endpoint while ``SqlProfileStore`` keeps the same tables
in a local SQLAlchemy database for development and tests.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, Sequence

import httpx
from sqlalchemy import Table, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import Base

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class ProfileStoreError(RuntimeError):
    """Raised when the profile store rejects or fails a request."""


class ProfileStore(Protocol):
    """Contract shared by the profile store backends."""

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str] | None = None,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]: ...

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]: ...

    async def upsert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        on_conflict: str,
    ) -> list[Row]: ...


class RestProfileStore:
    """PostgREST client backed by a shared ``httpx.AsyncClient``."""

    _REST_PREFIX = "/rest/v1"

    def __init__(self, http_client: httpx.AsyncClient, api_key: str | None):
        if not api_key:
            logger.warning(
                "Profile store key not set; requests will be sent without credentials"
            )
        self._client = http_client
        self._api_key = api_key

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        if prefer:
            headers["Prefer"] = prefer
        return headers

    @staticmethod
    def _encode_filter(value: Any) -> str:
        if value is None:
            return "is.null"
        if isinstance(value, bool):
            return f"eq.{str(value).lower()}"
        return f"eq.{value}"

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str] | None = None,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        params: list[tuple[str, str]] = [
            ("select", ",".join(columns) if columns else "*")
        ]
        for column, value in (filters or {}).items():
            params.append((column, self._encode_filter(value)))
        if order_by:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))
        if limit is not None:
            params.append(("limit", str(limit)))

        return await self._request("GET", table, params=params)

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        return await self._request(
            "POST",
            table,
            json=[dict(row) for row in rows],
            prefer="return=representation",
        )

    async def upsert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        on_conflict: str,
    ) -> list[Row]:
        return await self._request(
            "POST",
            table,
            params=[("on_conflict", on_conflict)],
            json=[dict(row) for row in rows],
            prefer="resolution=merge-duplicates,return=representation",
        )

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> list[Row]:
        url = f"{self._REST_PREFIX}/{table}"
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
        except httpx.HTTPError as exc:
            raise ProfileStoreError(
                f"Profile store request to {table} failed: {exc}"
            ) from exc

        if response.status_code >= 400:
            raise ProfileStoreError(self._describe_error(table, response))

        if not response.content:
            return []
        try:
            data = response.json()
        except ValueError as exc:
            raise ProfileStoreError(
                f"Unexpected non-JSON profile store response for {table}"
            ) from exc
        if isinstance(data, dict):
            return [data]
        if not isinstance(data, list):
            raise ProfileStoreError(f"Unexpected profile store payload for {table}")
        return [row for row in data if isinstance(row, dict)]

    @staticmethod
    def _describe_error(table: str, response: httpx.Response) -> str:
        detail: str = response.text
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            detail = str(payload.get("message") or payload.get("error") or detail)
        return f"Profile store rejected request to {table} ({response.status_code}): {detail}"


class SqlProfileStore:
    """Profile store backed by the local SQLAlchemy tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _table(name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise ProfileStoreError(f"Unknown profile store table {name}")
        return table

    @staticmethod
    def _column(table: Table, name: str):
        try:
            return table.c[name]
        except KeyError as exc:
            raise ProfileStoreError(
                f"Unknown column {name} on table {table.name}"
            ) from exc

    def _conditions(self, table: Table, filters: Mapping[str, Any] | None) -> list[Any]:
        conditions = []
        for column_name, value in (filters or {}).items():
            column = self._column(table, column_name)
            conditions.append(column.is_(None) if value is None else column == value)
        return conditions

    def _values(self, table: Table, row: Mapping[str, Any]) -> Row:
        return {self._column(table, key).name: value for key, value in row.items()}

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str] | None = None,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        target = self._table(table)
        selected = [self._column(target, name) for name in columns] if columns else [target]
        stmt = select(*selected).where(*self._conditions(target, filters))
        if order_by:
            column = self._column(target, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as exc:
            raise ProfileStoreError(f"Profile store select on {table} failed: {exc}") from exc

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        target = self._table(table)
        written: list[Row] = []
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    for row in rows:
                        stmt = insert(target).values(self._values(target, row)).returning(target)
                        result = await session.execute(stmt)
                        written.extend(dict(item) for item in result.mappings().all())
        except SQLAlchemyError as exc:
            raise ProfileStoreError(f"Profile store insert into {table} failed: {exc}") from exc
        return written

    async def upsert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        on_conflict: str,
    ) -> list[Row]:
        target = self._table(table)
        conflict_columns = [name.strip() for name in on_conflict.split(",") if name.strip()]
        if not conflict_columns:
            raise ProfileStoreError("Upsert requires at least one conflict column")

        written: list[Row] = []
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    for row in rows:
                        values = self._values(target, row)
                        missing = [name for name in conflict_columns if name not in values]
                        if missing:
                            raise ProfileStoreError(
                                f"Upsert row for {table} lacks conflict columns {missing}"
                            )
                        key = {name: values[name] for name in conflict_columns}
                        existing = await session.execute(
                            select(target).where(*self._conditions(target, key)).limit(1)
                        )
                        if existing.first() is None:
                            stmt = insert(target).values(values).returning(target)
                        else:
                            changes = {
                                name: value
                                for name, value in values.items()
                                if name not in key
                            }
                            stmt = (
                                update(target)
                                .where(*self._conditions(target, key))
                                .values(changes or key)
                                .returning(target)
                            )
                        result = await session.execute(stmt)
                        written.extend(dict(item) for item in result.mappings().all())
        except SQLAlchemyError as exc:
            raise ProfileStoreError(f"Profile store upsert into {table} failed: {exc}") from exc
        return written
