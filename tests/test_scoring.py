"""Tests for candidate scoring and derived research fields."""
import pytest

from boatresearch.research_core.models.interfaces import SpecsCandidate
from boatresearch.research_core.scoring import (
    build_fallback_keyword,
    build_link_query,
    compute_year_range,
    extract_search_keyword,
    mark_recommended,
    parse_leading_int,
    score_candidate,
)


def _candidate(name: str = "Catalina 42", first_built: str | None = None, slug: str = "c") -> SpecsCandidate:
    return SpecsCandidate(model_name=name, slug=slug, first_built=first_built)


class TestExtractSearchKeyword:
    def test_strips_leading_year(self):
        assert extract_search_keyword("2005 Dufour Classic 41") == "Dufour Classic 41"

    def test_returns_name_unchanged_without_year(self):
        assert extract_search_keyword("Catalina 42") == "Catalina 42"

    @pytest.mark.parametrize("value", [None, ""])
    def test_returns_none_for_empty_input(self, value):
        assert extract_search_keyword(value) is None

    def test_year_without_trailing_text_is_kept(self):
        assert extract_search_keyword("2005") == "2005"

    def test_strips_year_followed_by_extra_whitespace(self):
        assert extract_search_keyword("2005  Catalina 42") == "Catalina 42"

    def test_only_leading_year_is_stripped(self):
        assert extract_search_keyword("Hunter 2005 Edition") == "Hunter 2005 Edition"


class TestBuildFallbackKeyword:
    def test_combines_manufacturer_and_feet(self):
        assert build_fallback_keyword("Catalina", 12.8) == "Catalina 42"

    def test_rounds_to_nearest_foot(self):
        # 10 m = 32.8084 ft
        assert build_fallback_keyword("Beneteau", 10) == "Beneteau 33"

    def test_manufacturer_only_without_length(self):
        assert build_fallback_keyword("Catalina", None) == "Catalina"

    def test_none_without_manufacturer(self):
        assert build_fallback_keyword(None, 12.8) is None
        assert build_fallback_keyword(None, None) is None


class TestScoreCandidate:
    def test_exact_match_scores_at_least_100(self):
        assert score_candidate(_candidate("catalina 42"), "Catalina 42", None) == 100
        assert score_candidate(_candidate("Catalina 42", "1960"), "Catalina 42", 2005) >= 100

    def test_exact_match_with_year_bonus(self):
        assert score_candidate(_candidate("Catalina 42", "2000"), "Catalina 42", 2005) == 115

    def test_substring_match_scores_50(self):
        assert score_candidate(_candidate("Catalina 42 MkII"), "Catalina 42", None) == 50

    def test_partial_word_match_is_proportional(self):
        score = score_candidate(_candidate("Catalina 400"), "Catalina 42", None)
        assert score == pytest.approx(15.0)

    def test_no_keyword_scores_only_year(self):
        assert score_candidate(_candidate("Anything", "2005"), None, 2005) == 20

    def test_unparseable_year_adds_nothing(self):
        assert score_candidate(_candidate("Other", "n/a"), "Catalina 42", 2005) == 0

    def test_year_bonus_never_negative(self):
        assert score_candidate(_candidate("Other", "1950"), "Catalina 42", 2005) == 0

    def test_score_is_monotonic_in_year_proximity(self):
        near = score_candidate(_candidate("Catalina 400", "2003"), "Catalina 42", 2005)
        far = score_candidate(_candidate("Catalina 400", "1995"), "Catalina 42", 2005)
        assert near >= far

    def test_leading_digits_of_year_are_used(self):
        assert parse_leading_int("1998 (est.)") == 1998
        assert parse_leading_int("circa 1998") is None


class TestMarkRecommended:
    def test_empty_list_is_noop(self):
        candidates: list[SpecsCandidate] = []
        assert mark_recommended(candidates, "Catalina 42", 2005) is None
        assert candidates == []

    def test_single_candidate_is_marked(self):
        candidates = [_candidate("Unrelated")]
        mark_recommended(candidates, "Catalina 42", 2005)
        assert candidates[0].recommended is True

    def test_marks_exactly_the_best_scorer(self):
        candidates = [
            _candidate("Catalina 400", "1995", slug="catalina-400"),
            _candidate("Catalina 42", "1989", slug="catalina-42"),
            _candidate("Catalina 425", "2005", slug="catalina-425"),
        ]
        best = mark_recommended(candidates, "Catalina 42", 2005)
        assert best is candidates[1]
        assert [c.recommended for c in candidates] == [False, True, False]

    def test_ties_resolve_to_first(self):
        candidates = [_candidate("Alpha", slug="a"), _candidate("Beta", slug="b")]
        mark_recommended(candidates, "Catalina 42", None)
        assert [c.recommended for c in candidates] == [True, False]

    def test_catalina_scenario(self):
        candidates = [
            _candidate("Catalina 42", slug="catalina-42"),
            _candidate("Catalina 400", slug="catalina-400"),
        ]
        keyword = extract_search_keyword("2005 Catalina 42")
        assert score_candidate(candidates[0], keyword, 2005) == 100
        assert 0 < score_candidate(candidates[1], keyword, 2005) < 50
        mark_recommended(candidates, keyword, 2005)
        assert candidates[0].recommended and not candidates[1].recommended


class TestComputeYearRange:
    def test_specs_years_win(self):
        assert compute_year_range(2005, 1998, 2010) == (1998, 2010)

    def test_single_specs_year_fills_both_ends(self):
        assert compute_year_range(2005, 1998, None) == (1998, 1998)
        assert compute_year_range(2005, None, 2010) == (2010, 2010)

    def test_decade_bucket_from_build_year(self):
        assert compute_year_range(2005) == (2000, 2009)

    def test_nothing_known(self):
        assert compute_year_range(None) == (None, None)


class TestBuildLinkQuery:
    def test_uses_keyword(self):
        assert build_link_query("Catalina 42", "Catalina", "42", "sailboat review") == '"Catalina 42" sailboat review'

    def test_falls_back_to_manufacturer_and_class(self):
        assert build_link_query(None, "Catalina", "42", "owners forum") == '"Catalina 42" owners forum'

    def test_none_when_nothing_to_search(self):
        assert build_link_query(None, None, None, "owners forum") is None
