from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Generic, TypeVar

import httpx
from loguru import logger

from boatresearch.config import settings
from boatresearch.research_core.jobs import ResearchJob
from boatresearch.research_core.models.interfaces import (
    LinkCandidate,
    LinkResult,
    Listing,
    ModelKey,
    ResearchStore,
    SailboatSpecs,
    SelectionKind,
)
from boatresearch.research_core.scoring import (
    build_fallback_keyword,
    build_link_query,
    compute_year_range,
    extract_search_keyword,
    mark_recommended,
)
from boatresearch.services import logger as log_service
from boatresearch.tools import web_search
from boatresearch.tools.listing_page import extract_listing_description, truncate_summary
from boatresearch.tools.page_fetcher import PageFetcher
from boatresearch.tools.specs_site import SpecsSiteClient
from boatresearch.tools.web_utils import extract_domain, is_valid_url

T = TypeVar("T")

STEP_LISTING_PAGE = "listing_page"
STEP_SPECS = "specs"
STEP_REVIEWS = "reviews"
STEP_FORUMS = "forums"

WebSearch = Callable[[str], Awaitable[list[web_search.SearchResult]]]


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Outcome of a stage whose failure is soft: a value, or why there is none."""

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> StageResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> StageResult[T]:
        return cls(error=error)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PipelineRunner:
    """Drives one research job through its stages.

    Order: listing page summary -> specs (may pause) -> model dedupe ->
    reviews (may pause) -> forums (may pause) -> finalize. Soft failures
    come back as ``StageResult``; anything raised aborts the job as failed.
    """

    def __init__(
        self,
        store: ResearchStore,
        specs_client: SpecsSiteClient,
        page_fetcher: PageFetcher,
        *,
        search: WebSearch | None = None,
        summary_max_chars: int | None = None,
        review_qualifier: str | None = None,
        forum_qualifier: str | None = None,
    ):
        self.store = store
        self.specs_client = specs_client
        self.page_fetcher = page_fetcher
        self.search = search or web_search.search
        self.summary_max_chars = summary_max_chars or settings.research_summary_max_chars
        self.review_qualifier = review_qualifier or settings.review_query_qualifier
        self.forum_qualifier = forum_qualifier or settings.forum_query_qualifier

    async def run(self, job: ResearchJob) -> None:
        listing_id = job.listing_id
        try:
            listing = await self.store.get_listing(listing_id)
            if listing is None:
                raise LookupError(f"Listing {listing_id} not found")

            job.set_step(STEP_LISTING_PAGE)
            summary = await self._summarize_listing_page(listing)
            self._log_stage(listing_id, STEP_LISTING_PAGE, summary)

            job.set_step(STEP_SPECS)
            specs = await self._resolve_specs(job, listing)
            self._log_stage(
                listing_id,
                STEP_SPECS,
                specs,
                fields=specs.value.filled_fields() if specs.value else 0,
            )

            model_id = await self._claim_model_research(listing, specs.value)
            if model_id is not None:
                job.set_step(STEP_REVIEWS)
                reviews = await self._resolve_links(
                    job, listing, SelectionKind.REVIEWS, self.review_qualifier
                )
                self._log_stage(listing_id, STEP_REVIEWS, reviews, count=len(reviews.value or []))

                job.set_step(STEP_FORUMS)
                forums = await self._resolve_links(
                    job, listing, SelectionKind.FORUMS, self.forum_qualifier
                )
                self._log_stage(listing_id, STEP_FORUMS, forums, count=len(forums.value or []))

                await self.store.update_model_research(
                    model_id,
                    reviews=_results_payload(reviews.value),
                    forums=_results_payload(forums.value),
                    researched_at=_utc_now(),
                )

            await self.store.upsert_research_record(
                listing_id,
                status="complete",
                error_message=None,
                listing_summary=summary.value,
                researched_at=_utc_now(),
            )
            job.complete()
            log_service.log_event("research_complete", "Research complete", listing_id=listing_id)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.exception(f"Research pipeline failed for listing {listing_id}")
            job.fail(message)
            try:
                await self.store.upsert_research_record(
                    listing_id, status="failed", error_message=message
                )
            except Exception as db_exc:
                log_service.log_db_operation(
                    operation="upsert",
                    table="listing_research",
                    status="error",
                    details=f"listing_id={listing_id}",
                    error=str(db_exc),
                )

    # --- Stage 1: listing page summary ---

    async def _summarize_listing_page(self, listing: Listing) -> StageResult[str]:
        if not listing.link_url:
            return StageResult.success(None)
        if not is_valid_url(listing.link_url):
            return StageResult.failure(f"invalid listing url {listing.link_url!r}")
        try:
            html = await self.page_fetcher.fetch(listing.link_url)
            if html is None:
                return StageResult.failure("listing page fetch failed")
            description = extract_listing_description(html)
        except Exception as exc:
            return StageResult.failure(f"listing page summary failed: {exc}")
        if description is None:
            logger.warning(f"No description found on listing page {listing.link_url}")
            return StageResult.success(None)
        return StageResult.success(truncate_summary(description, self.summary_max_chars))

    # --- Stage 2: specs resolution ---

    async def _resolve_specs(self, job: ResearchJob, listing: Listing) -> StageResult[SailboatSpecs]:
        keyword = extract_search_keyword(listing.listing_name)
        if not keyword:
            logger.info(f"Listing {listing.id} has no name, skipping specs lookup")
            return StageResult.success(None)
        search_key = keyword.lower()

        cached = await self.store.find_search_mapping(search_key)
        if cached is not None:
            slug = cached.get("sailboat_slug")
            logger.info(f"Search mapping cache hit: {search_key!r} -> {slug or 'no match'}")
            if not slug:
                return StageResult.success(None)
            return await self._fetch_specs(slug)

        candidates = await self.specs_client.search(keyword)
        if not candidates:
            fallback = build_fallback_keyword(listing.manufacturer, listing.length_in_meters)
            if fallback and fallback.lower() != search_key:
                logger.info(f"No specs results for {keyword!r}, trying fallback {fallback!r}")
                fallback_candidates = await self.specs_client.search(fallback)
                if fallback_candidates is not None:
                    candidates = fallback_candidates

        if candidates is None:
            # Not cached: the next run must search again.
            return StageResult.failure("specs search fetch failed, will retry next run")

        if not candidates:
            await self.store.create_search_mapping(search_key, slug=None, model_name=None)
            return StageResult.success(None)

        mark_recommended(candidates, keyword, listing.build_year)
        logger.info(f"Pausing listing {listing.id} for specs selection ({len(candidates)} candidates)")
        slug = await job.wait_for_selection(SelectionKind.SPECS, candidates)

        chosen = next((c for c in candidates if c.slug == slug), None) if slug else None
        await self.store.create_search_mapping(
            search_key,
            slug=slug or None,
            model_name=chosen.model_name if chosen else None,
        )
        if not slug:
            logger.info(f"Listing {listing.id}: no specs candidate matched")
            return StageResult.success(None)
        return await self._fetch_specs(slug)

    async def _fetch_specs(self, slug: str) -> StageResult[SailboatSpecs]:
        specs = await self.specs_client.fetch_detail(slug)
        if specs is None:
            return StageResult.failure(f"specs detail fetch failed for {slug!r}")
        return StageResult.success(specs)

    # --- Stage 3: model-level dedupe ---

    async def _claim_model_research(
        self, listing: Listing, specs: SailboatSpecs | None
    ) -> int | None:
        """Return the id of a freshly created model row, or None when one already exists."""
        year_min, year_max = compute_year_range(
            listing.build_year,
            specs.first_built if specs else None,
            specs.last_built if specs else None,
        )
        key = ModelKey.build(listing.manufacturer, listing.boat_class, year_min, year_max)

        existing = await self.store.find_model_research(key)
        if existing is not None:
            logger.info(f"Model research already cached for {key}, skipping link searches")
            return None

        created = await self.store.create_model_research(
            key, sailboat_data=specs.to_dict() if specs else None
        )
        if created is None:
            logger.info(f"Model research for {key} was created concurrently, skipping link searches")
            return None
        return created["id"]

    # --- Stages 4 + 5: reviews and forums ---

    async def _resolve_links(
        self,
        job: ResearchJob,
        listing: Listing,
        kind: SelectionKind,
        qualifier: str,
    ) -> StageResult[list[LinkResult]]:
        query = build_link_query(
            extract_search_keyword(listing.listing_name),
            listing.manufacturer,
            listing.boat_class,
            qualifier,
        )
        if query is None:
            return StageResult.success([])

        try:
            results = await self.search(query)
        except httpx.HTTPError as exc:
            return StageResult.failure(f"{kind.value} search failed: {exc}")

        if not results:
            logger.info(f"No {kind.value} search results for {query!r}")
            return StageResult.success([])

        candidates = [
            LinkCandidate(
                title=r.title,
                url=r.url,
                source=extract_domain(r.url),
                snippet=r.snippet,
            )
            for r in results
        ]
        logger.info(f"Pausing listing {listing.id} for {kind.value} selection ({len(candidates)} candidates)")
        selected_urls = await job.wait_for_selection(kind, candidates)

        by_url = {c.url: c for c in candidates}
        selected = [
            LinkResult.from_candidate(by_url[url])
            for url in (selected_urls or [])
            if url in by_url
        ]
        return StageResult.success(selected)

    @staticmethod
    def _log_stage(listing_id: int, step: str, result: StageResult, **data) -> None:
        if result.ok:
            log_service.log_research_step(listing_id, step, "completed", data or None)
        else:
            log_service.log_research_step(listing_id, step, "failed", {"error": result.error, **data})


def _results_payload(results: list[LinkResult] | None) -> list[dict] | None:
    if not results:
        return None
    return [
        {"title": r.title, "source": r.source, "url": r.url, "excerpt": r.excerpt}
        for r in results
    ]
