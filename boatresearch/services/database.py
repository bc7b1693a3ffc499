"""PostgreSQL research store using asyncpg."""

from __future__ import annotations

import json
from typing import Any

import asyncpg

from boatresearch.config import settings
from boatresearch.research_core.models.interfaces import Listing, ModelKey
from boatresearch.services.logger import log_db_operation

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS listing_research (
    id SERIAL PRIMARY KEY,
    listing_id INTEGER NOT NULL UNIQUE,
    status TEXT NOT NULL DEFAULT 'pending',
    error_message TEXT,
    listing_summary TEXT,
    researched_at TIMESTAMPTZ,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS model_research (
    id SERIAL PRIMARY KEY,
    manufacturer TEXT NOT NULL,
    boat_class TEXT NOT NULL,
    year_min INTEGER NOT NULL DEFAULT 0,
    year_max INTEGER NOT NULL DEFAULT 0,
    sailboat_data JSONB,
    reviews JSONB,
    forums JSONB,
    researched_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    UNIQUE (manufacturer, boat_class, year_min, year_max)
);

CREATE TABLE IF NOT EXISTS search_key_mappings (
    id SERIAL PRIMARY KEY,
    search_key TEXT NOT NULL UNIQUE,
    sailboat_slug TEXT,
    model_name TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

RESEARCH_RECORD_FIELDS = {"status", "error_message", "listing_summary", "researched_at"}
MODEL_RESEARCH_FIELDS = {"sailboat_data", "reviews", "forums", "researched_at"}
JSON_FIELDS = {"sailboat_data", "reviews", "forums"}

MODEL_COLUMNS = (
    "id, manufacturer, boat_class, year_min, year_max, "
    "sailboat_data, reviews, forums, researched_at"
)


def _coerce_json(value: Any) -> Any:
    """Normalize jsonb values returned as strings by asyncpg."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return None
    return value


def _encode(field: str, value: Any) -> Any:
    if field in JSON_FIELDS and value is not None:
        return json.dumps(value)
    return value


def _model_row(record: asyncpg.Record | None) -> dict[str, Any] | None:
    if record is None:
        return None
    row = dict(record)
    for field in JSON_FIELDS:
        row[field] = _coerce_json(row.get(field))
    return row


class ResearchDatabase:
    """Research persistence backed by a lazily created asyncpg pool."""

    def __init__(self, database_url: str | None = None):
        self.database_url = database_url if database_url is not None else settings.database_url
        self._pool: asyncpg.Pool | None = None

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RuntimeError("Database not configured. Set DATABASE_URL in .env")
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                self.database_url,
                min_size=settings.database_pool_min_size,
                max_size=settings.database_pool_max_size,
            )
        return self._pool

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def ensure_schema(self) -> None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)
        log_db_operation("create_schema", "*", "success")

    # --- Listings (read-only) ---

    async def get_listing(self, listing_id: int) -> Listing | None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            result = await conn.fetchrow(
                """
                SELECT id, link_url, listing_name, manufacturer, boat_class,
                       build_year, length_in_meters
                FROM listings
                WHERE id = $1
                """,
                listing_id,
            )
        log_db_operation("select", "listings", "success", details=f"id={listing_id}")
        if result is None:
            return None
        return Listing(**dict(result))

    # --- Listing research ---

    async def get_research_record(self, listing_id: int) -> dict[str, Any] | None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            result = await conn.fetchrow(
                """
                SELECT id, listing_id, status, error_message, listing_summary, researched_at
                FROM listing_research
                WHERE listing_id = $1
                """,
                listing_id,
            )
        log_db_operation("select", "listing_research", "success", details=f"listing_id={listing_id}")
        return dict(result) if result else None

    async def upsert_research_record(self, listing_id: int, **fields: Any) -> None:
        updates = {k: v for k, v in fields.items() if k in RESEARCH_RECORD_FIELDS}
        columns = ["listing_id", *updates.keys()]
        placeholders = ", ".join(f"${i + 1}" for i in range(len(columns)))
        set_clause = ", ".join(f"{k} = EXCLUDED.{k}" for k in updates) or "status = listing_research.status"

        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    f"""
                    INSERT INTO listing_research ({", ".join(columns)})
                    VALUES ({placeholders})
                    ON CONFLICT (listing_id) DO UPDATE
                    SET {set_clause}, updated_at = now()
                    """,
                    listing_id,
                    *updates.values(),
                )
        except Exception as e:
            log_db_operation("upsert", "listing_research", "error", details=f"listing_id={listing_id}", error=str(e))
            raise
        log_db_operation("upsert", "listing_research", "success", details=f"listing_id={listing_id} {updates.get('status')}")

    # --- Model research cache ---

    async def find_model_research(self, key: ModelKey) -> dict[str, Any] | None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            result = await conn.fetchrow(
                f"""
                SELECT {MODEL_COLUMNS}
                FROM model_research
                WHERE manufacturer = $1 AND boat_class = $2 AND year_min = $3 AND year_max = $4
                """,
                key.manufacturer,
                key.boat_class,
                key.year_min,
                key.year_max,
            )
        log_db_operation("select", "model_research", "hit" if result else "miss", details=str(key))
        return _model_row(result)

    async def create_model_research(
        self, key: ModelKey, *, sailboat_data: dict[str, Any] | None
    ) -> dict[str, Any] | None:
        """Insert the model row; returns None if another writer already owns the key."""
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            result = await conn.fetchrow(
                f"""
                INSERT INTO model_research (manufacturer, boat_class, year_min, year_max, sailboat_data)
                VALUES ($1, $2, $3, $4, $5)
                ON CONFLICT (manufacturer, boat_class, year_min, year_max) DO NOTHING
                RETURNING {MODEL_COLUMNS}
                """,
                key.manufacturer,
                key.boat_class,
                key.year_min,
                key.year_max,
                _encode("sailboat_data", sailboat_data),
            )
        status = "success" if result else "conflict"
        log_db_operation("insert", "model_research", status, details=str(key))
        return _model_row(result)

    async def update_model_research(self, model_id: int, **fields: Any) -> None:
        updates = {k: v for k, v in fields.items() if k in MODEL_RESEARCH_FIELDS}
        if not updates:
            return
        set_clause = ", ".join(f"{k} = ${i + 2}" for i, k in enumerate(updates))
        values = [_encode(k, v) for k, v in updates.items()]

        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                f"UPDATE model_research SET {set_clause} WHERE id = $1",
                model_id,
                *values,
            )
        log_db_operation("update", "model_research", "success", details=f"id={model_id}")

    async def find_latest_model_research(
        self, manufacturer: str, boat_class: str
    ) -> dict[str, Any] | None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            result = await conn.fetchrow(
                f"""
                SELECT {MODEL_COLUMNS}
                FROM model_research
                WHERE manufacturer = $1 AND boat_class = $2
                ORDER BY researched_at DESC NULLS LAST
                LIMIT 1
                """,
                manufacturer,
                boat_class,
            )
        log_db_operation("select", "model_research", "success", details=f"{manufacturer} {boat_class}")
        return _model_row(result)

    # --- Search keyword cache ---

    async def find_search_mapping(self, search_key: str) -> dict[str, Any] | None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            result = await conn.fetchrow(
                """
                SELECT id, search_key, sailboat_slug, model_name
                FROM search_key_mappings
                WHERE search_key = $1
                """,
                search_key,
            )
        log_db_operation("select", "search_key_mappings", "hit" if result else "miss", details=search_key)
        return dict(result) if result else None

    async def create_search_mapping(
        self, search_key: str, *, slug: str | None, model_name: str | None
    ) -> None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO search_key_mappings (search_key, sailboat_slug, model_name)
                VALUES ($1, $2, $3)
                ON CONFLICT (search_key) DO NOTHING
                """,
                search_key,
                slug,
                model_name,
            )
        log_db_operation("insert", "search_key_mappings", "success", details=f"{search_key} -> {slug}")
