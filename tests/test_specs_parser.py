import pytest

from boatresearch.tools.specs_parser import parse_number, parse_search_results, parse_specs_from_html

SEARCH_HTML = """
<html><body>
<table>
  <thead><tr><th>Model</th><th>LOA</th><th>First Built</th></tr></thead>
  <tbody>
    <tr>
      <td><a href="/sailboat/catalina-42">Catalina 42</a></td>
      <td>41.83 ft</td>
      <td>1989</td>
    </tr>
    <tr>
      <td><a href="https://sailboatdata.com/sailboat/catalina-400/?units=metric">Catalina 400</a></td>
      <td>40.5 ft</td>
      <td></td>
    </tr>
    <tr><td><a href="/sailboat/short-row">Short</a></td><td>1</td></tr>
    <tr><td><a href="/builder/catalina">Catalina Yachts</a></td><td>-</td><td>-</td></tr>
  </tbody>
</table>
</body></html>
"""

DETAIL_HTML = """
<html><body>
<table>
  <tr><th>Hull Type:</th><td>Fin w/spade rudder</td></tr>
  <tr><th>Rigging Type:</th><td>Masthead Sloop</td></tr>
  <tr><th>LOA:</th><td>41.83 ft / 12.75 m</td></tr>
  <tr><th>Beam:</th><td>13.83 ft</td></tr>
  <tr><th>Displacement:</th><td>20,500 lb</td></tr>
  <tr><th>Ballast:</th><td>8,300 lb</td></tr>
  <tr><th>Draft:</th><td>5.0 / 6.83 ft</td></tr>
  <tr><th>First Built:</th><td>1989</td></tr>
  <tr><th>Last Built:</th><td>2008</td></tr>
  <tr><th># Built:</th><td>1,000</td></tr>
</table>
<dl>
  <dt>Designer</dt><dd>Gerry Douglas</dd>
  <dt>Comfort Ratio</dt><dd>30.5</dd>
</dl>
</body></html>
"""


def test_parse_search_results_extracts_candidates():
    candidates = parse_search_results(SEARCH_HTML)

    assert [c.slug for c in candidates] == ["catalina-42", "catalina-400"]
    first, second = candidates
    assert first.model_name == "Catalina 42"
    assert first.length_overall == "41.83 ft"
    assert first.first_built == "1989"
    assert second.first_built is None
    assert not any(c.recommended for c in candidates)


def test_parse_search_results_empty_page():
    assert parse_search_results("<html><body>No results</body></html>") == []


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("20,500 lb", 20500.0),
        ("13.83 ft", 13.83),
        ("-3.5", -3.5),
        ("n/a", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_parse_specs_from_html():
    specs = parse_specs_from_html(DETAIL_HTML, "https://specs.example.com/sailboat/catalina-42")

    assert specs.url == "https://specs.example.com/sailboat/catalina-42"
    assert specs.hull_type == "Fin w/spade rudder"
    assert specs.rigging == "Masthead Sloop"
    assert specs.beam == 13.83
    assert specs.displacement == 20500.0
    assert specs.ballast == 8300.0
    assert specs.draft_min == 5.0
    assert specs.draft_max == 6.83
    assert specs.first_built == 1989
    assert specs.last_built == 2008
    assert specs.number_built == 1000
    assert specs.designer == "Gerry Douglas"
    assert specs.comfort_ratio == 30.5
    assert specs.engine is None


def test_single_draft_value_fills_both_ends():
    html = "<table><tr><td>Draft</td><td>6.5 ft</td></tr></table>"
    specs = parse_specs_from_html(html)
    assert specs.draft_min == specs.draft_max == 6.5


def test_labels_split_across_inline_elements_still_match():
    html = """
    <table>
      <tr><td><b>Hull</b> <b>Type</b>:</td><td>Fin keel</td></tr>
      <tr><td><span>First</span>
        <span>Built</span></td><td>1989</td></tr>
    </table>
    """
    specs = parse_specs_from_html(html)
    assert specs.hull_type == "Fin keel"
    assert specs.first_built == 1989
