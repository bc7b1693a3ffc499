from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from boatresearch.config import settings

DDG_BASE_URL = "https://duckduckgo.com"
ALTERNATE_RESULT_SELECTORS = "a.result-link, .results a.result__a, .web-result a"


@dataclass
class SearchResult:
    title: str
    url: str
    snippet: str = ""


def _unwrap_redirect(raw_href: str) -> str:
    """DuckDuckGo wraps result links in a redirect; the target is in ``uddg``."""
    try:
        parsed = urlparse(urljoin(DDG_BASE_URL, raw_href))
    except ValueError:
        return raw_href
    target = parse_qs(parsed.query).get("uddg")
    return target[0] if target else raw_href


def parse_results(html: str) -> list[SearchResult]:
    soup = BeautifulSoup(html, "html.parser")
    results: list[SearchResult] = []

    for elem in soup.select("#links .result"):
        anchor = elem.select_one(".result__a")
        if anchor is None:
            continue
        title = anchor.get_text(strip=True)
        url = _unwrap_redirect(anchor.get("href") or "")
        snippet_el = elem.select_one(".result__snippet")
        snippet = snippet_el.get_text(strip=True) if snippet_el else ""
        if title and url:
            results.append(SearchResult(title=title, url=url, snippet=snippet))

    if results or not html:
        return results

    # Lite / no-JS layouts
    for anchor in soup.select(ALTERNATE_RESULT_SELECTORS):
        title = anchor.get_text(strip=True)
        href = anchor.get("href") or ""
        if title and href.startswith("http"):
            results.append(SearchResult(title=title, url=href))
    if results:
        logger.debug(f"Web search matched {len(results)} results with alternate selectors")
    return results


async def search(query: str) -> list[SearchResult]:
    """Run a web search over plain HTTP.

    Non-success responses yield an empty list; only transport failures raise
    (as ``httpx.HTTPError``).
    """
    logger.info(f"Web search: {query!r}")
    async with httpx.AsyncClient(
        timeout=settings.web_search_timeout_seconds,
        follow_redirects=True,
    ) as client:
        response = await client.get(
            settings.web_search_url,
            params={"q": query},
            headers={"User-Agent": settings.web_search_user_agent},
        )

    if not response.is_success:
        logger.warning(f"Web search failed with HTTP {response.status_code} for {query!r}")
        return []

    results = parse_results(response.text)
    logger.info(f"Web search: {len(results)} results for {query!r}")
    return results
