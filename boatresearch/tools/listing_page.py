from __future__ import annotations

from bs4 import BeautifulSoup

from boatresearch.tools.web_utils import clean_text

MIN_DESCRIPTION_CHARS = 20
ELLIPSIS = "…"


def extract_listing_description(html: str) -> str | None:
    """Pull the seller's description out of a listing page.

    Listing pages render the description as an accordion:
    ``<details><summary>Description</summary><div class="data-html">...``.
    """
    soup = BeautifulSoup(html, "html.parser")
    for summary in soup.find_all("summary"):
        if summary.get_text(strip=True).lower() != "description":
            continue
        body = summary.find_next_sibling(class_="data-html")
        if body is None:
            continue
        text = clean_text(body.get_text(" "))
        if len(text) > MIN_DESCRIPTION_CHARS:
            return text
    return None


def truncate_summary(text: str, max_chars: int = 350) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + ELLIPSIS
