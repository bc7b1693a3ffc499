from __future__ import annotations

from urllib.parse import urlencode

from loguru import logger

from boatresearch.config import settings
from boatresearch.research_core.models.interfaces import SailboatSpecs, SpecsCandidate
from boatresearch.tools.page_fetcher import PageFetcher
from boatresearch.tools.specs_parser import parse_search_results, parse_specs_from_html


class SpecsSiteClient:
    """Search and detail lookups against the sailboat specs site.

    Both calls go through the browser because the site sits behind a bot
    challenge. ``None`` always means the fetch failed and must not be cached;
    an empty list means the search ran and found nothing.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        *,
        base_url: str | None = None,
        results_per_page: int | None = None,
    ):
        self.fetcher = fetcher
        self.base_url = (base_url or settings.specs_site_base_url).rstrip("/")
        self.results_per_page = results_per_page or settings.specs_site_results_per_page

    def search_url(self, keyword: str) -> str:
        params = {
            "keyword": keyword,
            "sort-select": "",
            "sailboats_per_page": self.results_per_page,
        }
        return f"{self.base_url}/?{urlencode(params)}"

    def detail_url(self, slug: str) -> str:
        return f"{self.base_url}/sailboat/{slug}"

    async def search(self, keyword: str) -> list[SpecsCandidate] | None:
        logger.info(f"Searching specs site for {keyword!r}")
        html = await self.fetcher.fetch(self.search_url(keyword))
        if html is None:
            logger.warning(f"Specs search for {keyword!r} failed (no page content)")
            return None

        candidates = parse_search_results(html)
        logger.info(f"Specs search for {keyword!r}: {len(candidates)} candidates")
        return candidates

    async def fetch_detail(self, slug: str) -> SailboatSpecs | None:
        url = self.detail_url(slug)
        logger.info(f"Fetching specs detail for slug {slug!r}")
        html = await self.fetcher.fetch(url)
        if html is None:
            return None
        return parse_specs_from_html(html, url)
