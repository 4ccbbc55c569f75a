import random
import re
from collections import Counter

import pytest

from services.correlations.matchers import (
    collect_matches,
    scan_boundaries,
    scan_css,
    scan_regex,
    scan_xpath,
    select_match,
)
from services.correlations.model import Match, MatchSelection


def _values(matches):
    return [m.group(0) for m in matches]


def test_collect_stops_at_requested_count_across_sources():
    inputs = iter(["1 2 3", "4 5"])
    matches = collect_matches(scan_regex(re.compile(r"\d")), inputs, 2)
    assert _values(matches) == ["1", "2"]
    # The second source was never read
    assert next(inputs) == "4 5"


def test_collect_spans_sources_in_order():
    matches = collect_matches(scan_regex(re.compile(r"\d")), ["1 2", "3 4"], 3)
    assert _values(matches) == ["1", "2", "3"]


def test_collect_everything_when_count_not_positive():
    matches = collect_matches(scan_regex(re.compile(r"\d")), ["1 2", None, "3"], 0)
    assert _values(matches) == ["1", "2", "3"]


@pytest.mark.parametrize("n", [1, 2, 3])
def test_nth_selection_is_nth_collected(n):
    matches = collect_matches(scan_regex(re.compile(r"id=(\d+)")), ["id=1 id=2 id=3"], 0)
    assert select_match(matches, MatchSelection.fixed(n)).group(1) == str(n)


def test_out_of_range_and_empty_select_nothing():
    matches = (Match.of("a"),)
    assert select_match(matches, MatchSelection.fixed(2)) is None
    assert select_match((), MatchSelection.fixed(1)) is None
    assert select_match((), MatchSelection.random()) is None


def test_random_selection_is_roughly_uniform():
    matches = (Match.of("a"), Match.of("b"), Match.of("c"))
    rng = random.Random(7)
    counts = Counter(
        select_match(matches, MatchSelection.random(), rng).group(0)
        for _ in range(3000)
    )
    assert set(counts) == {"a", "b", "c"}
    assert all(800 < count < 1200 for count in counts.values())


def test_regex_unmatched_optional_group_is_empty():
    matches = collect_matches(scan_regex(re.compile(r"a(x)?b")), ["ab"], 0)
    assert matches[0].groups == ("ab", "")


def test_boundaries_extract_every_value():
    scan = scan_boundaries("[", "]")
    assert _values(scan("a[1]b[2]c[3")) == ["1", "2"]


def test_next_left_boundary_searched_one_past_previous():
    # "aa" is found at 0 and again at 1, overlapping the first hit
    assert _values(scan_boundaries("aa", "b")("aaab")) == ["a", ""]


def test_css_attribute_and_text():
    html = '<div><input class="t" value="v1"><input class="t" value="v2"><p>hello</p></div>'
    assert _values(scan_css("input.t", "value")(html)) == ["v1", "v2"]
    assert _values(scan_css("p")(html)) == ["hello"]


def test_xpath_text_attribute_and_number():
    xml = '<?xml version="1.0" encoding="UTF8"?><token value="A"><_csrf>B</_csrf><_csrf>C</_csrf></token>'
    assert _values(scan_xpath("/token/_csrf/text()")(xml)) == ["B", "C"]
    assert _values(scan_xpath("/token/@value")(xml)) == ["A"]
    assert _values(scan_xpath("count(//_csrf)")(xml)) == ["2"]


def test_xpath_on_unparsable_document_yields_nothing():
    assert _values(scan_xpath("//a")('{"a": 1}')) == []
