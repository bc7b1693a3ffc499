"""Test doubles for the research pipeline collaborators."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any

from boatresearch.research_core.models.interfaces import (
    Listing,
    ModelKey,
    SailboatSpecs,
    SpecsCandidate,
)


class InMemoryStore:
    """Dict-backed stand-in for the Postgres research store."""

    def __init__(self, listings: list[Listing] | None = None):
        self.listings = {listing.id: listing for listing in listings or []}
        self.research_records: dict[int, dict[str, Any]] = {}
        self.model_research: dict[ModelKey, dict[str, Any]] = {}
        self.search_mappings: dict[str, dict[str, Any]] = {}
        self.calls: list[str] = []

    async def get_listing(self, listing_id: int) -> Listing | None:
        self.calls.append("get_listing")
        return self.listings.get(listing_id)

    async def get_research_record(self, listing_id: int) -> dict[str, Any] | None:
        return self.research_records.get(listing_id)

    async def upsert_research_record(self, listing_id: int, **fields: Any) -> None:
        self.calls.append(f"upsert_research_record:{fields.get('status')}")
        record = self.research_records.setdefault(listing_id, {"listing_id": listing_id})
        record.update(fields)

    async def find_model_research(self, key: ModelKey) -> dict[str, Any] | None:
        self.calls.append("find_model_research")
        return self.model_research.get(key)

    async def create_model_research(
        self, key: ModelKey, *, sailboat_data: dict[str, Any] | None
    ) -> dict[str, Any] | None:
        self.calls.append("create_model_research")
        if key in self.model_research:
            return None
        row = {
            "id": len(self.model_research) + 1,
            "manufacturer": key.manufacturer,
            "boat_class": key.boat_class,
            "year_min": key.year_min,
            "year_max": key.year_max,
            "sailboat_data": sailboat_data,
            "reviews": None,
            "forums": None,
            "researched_at": None,
        }
        self.model_research[key] = row
        return dict(row)

    async def update_model_research(self, model_id: int, **fields: Any) -> None:
        for row in self.model_research.values():
            if row["id"] == model_id:
                row.update(fields)
                return
        raise LookupError(f"model_research {model_id} not found")

    async def find_latest_model_research(
        self, manufacturer: str, boat_class: str
    ) -> dict[str, Any] | None:
        for row in self.model_research.values():
            if row["manufacturer"] == manufacturer and row["boat_class"] == boat_class:
                return row
        return None

    async def find_search_mapping(self, search_key: str) -> dict[str, Any] | None:
        self.calls.append("find_search_mapping")
        return self.search_mappings.get(search_key)

    async def create_search_mapping(
        self, search_key: str, *, slug: str | None, model_name: str | None
    ) -> None:
        self.calls.append("create_search_mapping")
        self.search_mappings.setdefault(
            search_key,
            {"search_key": search_key, "sailboat_slug": slug, "model_name": model_name},
        )


class FakeSpecsClient:
    """Scripted specs-site client; ``search_results`` maps keyword -> result."""

    def __init__(
        self,
        search_results: dict[str, list[SpecsCandidate] | None] | None = None,
        details: dict[str, SailboatSpecs | None] | None = None,
    ):
        self.search_results = search_results or {}
        self.details = details or {}
        self.searches: list[str] = []
        self.detail_requests: list[str] = []

    async def search(self, keyword: str) -> list[SpecsCandidate] | None:
        self.searches.append(keyword)
        result = self.search_results.get(keyword, [])
        if result is None:
            return None
        return [replace(c, recommended=False) for c in result]

    async def fetch_detail(self, slug: str) -> SailboatSpecs | None:
        self.detail_requests.append(slug)
        return self.details.get(slug)


class FakePageFetcher:
    def __init__(self, pages: dict[str, str | None] | None = None):
        self.pages = pages or {}
        self.fetched: list[str] = []

    async def fetch(self, url: str) -> str | None:
        self.fetched.append(url)
        return self.pages.get(url)


async def wait_for(predicate, timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0)


