"""Candidate ranking and derived research fields.

Everything here is pure: no I/O, no shared state.
"""

from __future__ import annotations

import math
import re

from boatresearch.research_core.models.interfaces import SpecsCandidate

FEET_PER_METER = 3.28084

LEADING_YEAR_RE = re.compile(r"^\d{4}\s+")
LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")

EXACT_MATCH_POINTS = 100
CONTAINS_MATCH_POINTS = 50
WORD_MATCH_POINTS = 30
YEAR_PROXIMITY_POINTS = 20


def extract_search_keyword(listing_name: str | None) -> str | None:
    """Strip a leading build year: "2005 Dufour Classic 41" -> "Dufour Classic 41"."""
    if not listing_name:
        return None
    return LEADING_YEAR_RE.sub("", listing_name, count=1).strip() or None


def build_fallback_keyword(
    manufacturer: str | None, length_in_meters: float | None
) -> str | None:
    if not manufacturer:
        return None
    if length_in_meters:
        length_ft = _round_half_up(length_in_meters * FEET_PER_METER)
        return f"{manufacturer} {length_ft}"
    return manufacturer


def parse_leading_int(value: str | None) -> int | None:
    """Parse the leading integer of a string, ignoring trailing text ("1998 (est)" -> 1998)."""
    if not value:
        return None
    match = LEADING_INT_RE.match(value)
    return int(match.group(1)) if match else None


def score_candidate(
    candidate: SpecsCandidate,
    keyword: str | None,
    build_year: int | None,
) -> float:
    score = 0.0
    needle = (keyword or "").upper()
    name = candidate.model_name.upper()

    if needle and name == needle:
        score += EXACT_MATCH_POINTS
    elif needle and needle in name:
        score += CONTAINS_MATCH_POINTS
    elif needle:
        words = needle.split()
        matched = [w for w in words if w in name]
        score += (len(matched) / len(words)) * WORD_MATCH_POINTS

    candidate_year = parse_leading_int(candidate.first_built)
    if build_year and candidate_year is not None:
        year_diff = abs(candidate_year - build_year)
        score += max(0, YEAR_PROXIMITY_POINTS - year_diff)

    return score


def mark_recommended(
    candidates: list[SpecsCandidate],
    keyword: str | None,
    build_year: int | None,
) -> SpecsCandidate | None:
    """Flag the strictly best-scoring candidate; ties keep the earliest one."""
    if not candidates:
        return None

    best_idx = 0
    best_score = -1.0
    for idx, candidate in enumerate(candidates):
        score = score_candidate(candidate, keyword, build_year)
        if score > best_score:
            best_score = score
            best_idx = idx

    best = candidates[best_idx]
    best.recommended = True
    return best


def compute_year_range(
    build_year: int | None,
    first_built: int | None = None,
    last_built: int | None = None,
) -> tuple[int | None, int | None]:
    """Production years from the specs win; otherwise the build year's decade."""
    if first_built or last_built:
        year_min = first_built if first_built is not None else last_built
        year_max = last_built if last_built is not None else first_built
        return year_min, year_max
    if build_year:
        decade_start = (build_year // 10) * 10
        return decade_start, decade_start + 9
    return None, None


def build_link_query(
    keyword: str | None,
    manufacturer: str | None,
    boat_class: str | None,
    qualifier: str,
) -> str | None:
    boat_name = keyword or f"{manufacturer or ''} {boat_class or ''}".strip()
    if not boat_name:
        return None
    return f'"{boat_name}" {qualifier}'


def _round_half_up(value: float) -> int:
    # round() is banker's rounding; 32.5 ft must become 33.
    return math.floor(value + 0.5)
