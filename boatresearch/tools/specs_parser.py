from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag

from boatresearch.research_core.models.interfaces import SailboatSpecs, SpecsCandidate
from boatresearch.tools.web_utils import clean_text

SLUG_RE = re.compile(r"/sailboat/([^/?#]+)")
NUMBER_RE = re.compile(r"^-?(\d+(\.\d*)?|\.\d+)")


def parse_search_results(html: str) -> list[SpecsCandidate]:
    """Parse the specs-site search results table into candidates."""
    soup = BeautifulSoup(html, "html.parser")
    candidates: list[SpecsCandidate] = []

    for row in soup.select("table tbody tr"):
        cells = row.find_all("td")
        if len(cells) < 3:
            continue

        model_cell = cells[0]
        link = model_cell.find("a")
        model_name = (link.get_text(strip=True) if link else "") or model_cell.get_text(strip=True)
        if not model_name:
            continue

        href = link.get("href", "") if isinstance(link, Tag) else ""
        match = SLUG_RE.search(href or "")
        if not match:
            continue

        candidates.append(
            SpecsCandidate(
                model_name=model_name,
                slug=match.group(1),
                length_overall=cells[1].get_text(strip=True) or None,
                first_built=cells[2].get_text(strip=True) or None,
            )
        )
    return candidates


def parse_number(value: str | None) -> float | None:
    if not value:
        return None
    cleaned = re.sub(r"[,\s]", "", value)
    cleaned = re.sub(r"[^\d.-]", "", cleaned)
    match = NUMBER_RE.match(cleaned)
    return float(match.group(0)) if match else None


def _parse_int(value: str | None) -> int | None:
    number = parse_number(value)
    return int(number) if number is not None else None


class _LabelLookup:
    """Finds the value cell next to a label in tables or definition lists."""

    def __init__(self, soup: BeautifulSoup):
        self._cells = soup.find_all(["td", "th"])
        self._terms = soup.find_all("dt")

    def find(self, label: str) -> str | None:
        needle = label.lower()

        value = self._next_value(self._cells, needle, "td")
        if value:
            return value
        return self._next_value(self._terms, needle, "dd")

    def first(self, *labels: str) -> str | None:
        for label in labels:
            value = self.find(label)
            if value is not None:
                return value
        return None

    @staticmethod
    def _next_value(elements: list[Tag], needle: str, sibling_name: str) -> str | None:
        for el in elements:
            if needle not in clean_text(el.get_text(" ")).lower():
                continue
            sibling = el.find_next_sibling()
            if sibling is not None and sibling.name == sibling_name:
                return sibling.get_text(strip=True) or None
        return None


def parse_specs_from_html(html: str, url: str | None = None) -> SailboatSpecs:
    """Extract the specs blob from a specs-site detail page."""
    soup = BeautifulSoup(html, "html.parser")
    lookup = _LabelLookup(soup)

    specs = SailboatSpecs(url=url)
    specs.hull_type = lookup.find("Hull Type")
    specs.rigging = lookup.find("Rigging")
    specs.construction = lookup.find("Construction")
    specs.displacement = parse_number(lookup.find("Displacement"))
    specs.ballast = parse_number(lookup.find("Ballast"))
    specs.loa = parse_number(lookup.find("LOA"))
    specs.lwl = parse_number(lookup.find("LWL"))
    specs.beam = parse_number(lookup.find("Beam"))
    specs.sail_area = parse_number(lookup.find("Sail Area"))
    specs.engine = lookup.find("Engine")
    specs.aux_power_make = lookup.find("Make")
    specs.aux_power_model = lookup.find("Model")
    specs.aux_power_fuel = lookup.find("Fuel")
    specs.water = parse_number(lookup.find("Water"))
    specs.designer = lookup.first("Designer", "Design")

    # Ratios
    specs.sa_displacement = parse_number(lookup.find("SA/Disp"))
    specs.ballast_displacement = parse_number(lookup.first("Bal/Disp", "Ballast/Disp"))
    specs.displacement_length = parse_number(lookup.first("Disp/Len", "Disp/Length"))
    specs.comfort_ratio = parse_number(lookup.find("Comfort"))
    specs.capsize_screening = parse_number(lookup.find("Capsize"))

    # Draft may be a range like "4.5 / 6.5"
    draft = lookup.find("Draft")
    if draft:
        parts = [parse_number(part.strip()) for part in draft.split("/")]
        specs.draft_min = parts[0]
        specs.draft_max = parts[1] if len(parts) >= 2 else parts[0]

    specs.first_built = _parse_int(lookup.first("First Built", "Year"))
    specs.last_built = _parse_int(lookup.find("Last Built"))
    specs.number_built = _parse_int(lookup.first("# Built", "Number Built"))
    return specs
