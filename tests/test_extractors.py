import logging

import pytest

from services.correlations.extractors import (
    ExtractionContext,
    compile_extractor,
    first_match,
    run_extractor,
    run_extractors,
)
from services.correlations.model import (
    ExtractorDescriptor,
    ExtractorKind,
    SampleResult,
    TargetSelector,
    TemplateError,
)
from services.correlations.patterns import PatternCache

PRODUCTS = (
    '<ul><li><a href="/p?id=11">A</a></li>'
    '<li><a href="/p?id=22">B</a></li>'
    '<li><a href="/p?id=33">C</a></li></ul>'
)


@pytest.fixture
def products():
    return SampleResult.from_text(PRODUCTS, content_type="text/html")


def test_regex_single_binds_value_and_groups(context):
    sample = SampleResult.from_text('<input name="_csrf" value="abc123">')
    descriptor = ExtractorDescriptor(ref_name="_csrf", expression='name="_csrf" value="(.*?)"')
    variables = run_extractor(descriptor, sample, {}, context)
    assert variables == {
        "_csrf": "abc123",
        "_csrf_g": "1",
        "_csrf_g0": 'name="_csrf" value="abc123"',
        "_csrf_g1": "abc123",
    }


def test_regex_nth_match_and_template(products, context):
    descriptor = ExtractorDescriptor(
        ref_name="pid", expression=r'href="/(p)\?id=(\d+)"', template="$1$-$2$", match_number=2
    )
    variables = run_extractor(descriptor, products, {}, context)
    assert variables["pid"] == "p-22"
    assert variables["pid_g"] == "2"


def test_out_of_range_match_keeps_default(products, context):
    descriptor = ExtractorDescriptor(
        ref_name="pid", expression=r"id=(\d+)", match_number=9, default_value="NOT_FOUND"
    )
    variables = run_extractor(descriptor, products, {"pid_g": "1", "pid_g1": "old"}, context)
    assert variables == {"pid": "NOT_FOUND"}


def test_regex_series_binds_every_match(products, context):
    descriptor = ExtractorDescriptor(ref_name="pid", expression=r"id=(\d+)", match_number=-1)
    variables = run_extractor(descriptor, products, {"pid": "stale"}, context)
    assert "pid" not in variables
    assert variables["pid_matchNr"] == "3"
    assert [variables[f"pid_{i}"] for i in (1, 2, 3)] == ["11", "22", "33"]
    assert variables["pid_2_g1"] == "22"


def test_random_match_is_one_of_the_matches(products, context):
    descriptor = ExtractorDescriptor(ref_name="pid", expression=r"id=(\d+)", match_number=0)
    variables = run_extractor(descriptor, products, {}, context)
    assert variables["pid"] in {"11", "22", "33"}


def test_malformed_pattern_is_logged_and_default_applied(products, context, caplog):
    descriptor = ExtractorDescriptor(ref_name="pid", expression="(", default_value="NOT_FOUND")
    with caplog.at_level(logging.ERROR):
        variables = run_extractor(descriptor, products, {}, context)
    assert variables == {"pid": "NOT_FOUND"}
    assert "Error in pattern" in caplog.text


def test_template_referencing_missing_group_is_rejected(context):
    descriptor = ExtractorDescriptor(ref_name="pid", expression=r"id=(\d+)", template="$2$")
    with pytest.raises(TemplateError):
        compile_extractor(descriptor, context)

    variables = run_extractor(descriptor, SampleResult.from_text("id=1"), {}, context)
    assert variables == {}


def test_boundary_extractor_writes_no_group_variables(context):
    sample = SampleResult.from_text("[1,2,3,4,['randomstringtoken',9],9,8,6]")
    descriptor = ExtractorDescriptor(
        ref_name="token", kind=ExtractorKind.BOUNDARY, left_boundary="4,['", right_boundary="',9]"
    )
    assert run_extractor(descriptor, sample, {}, context) == {"token": "randomstringtoken"}


def test_boundary_extractor_needs_both_boundaries(context):
    descriptor = ExtractorDescriptor(ref_name="token", kind=ExtractorKind.BOUNDARY, left_boundary="x")
    with pytest.raises(ValueError):
        compile_extractor(descriptor, context)


def test_css_extractor(context):
    sample = SampleResult.from_text('<form><input id="prodId" value="123"></form>', content_type="text/html")
    descriptor = ExtractorDescriptor(
        ref_name="prod", kind=ExtractorKind.CSS, expression="#prodId", attribute="value"
    )
    assert run_extractor(descriptor, sample, {}, context) == {"prod": "123"}


def test_invalid_css_selector_is_logged(context, caplog):
    descriptor = ExtractorDescriptor(ref_name="prod", kind=ExtractorKind.CSS, expression="input[")
    with caplog.at_level(logging.ERROR):
        assert run_extractor(descriptor, SampleResult.from_text("<p/>"), {}, context) == {}
    assert "prod" in caplog.text


def test_xpath_extractor_series(context):
    sample = SampleResult.from_text("<ids><id>1</id><id>2</id></ids>", content_type="application/xml")
    descriptor = ExtractorDescriptor(
        ref_name="id", kind=ExtractorKind.XPATH, expression="/ids/id/text()", match_number=-1
    )
    variables = run_extractor(descriptor, sample, {}, context)
    assert variables == {"id_matchNr": "2", "id_1": "1", "id_2": "2"}


def test_header_target(context):
    sample = SampleResult.from_text("body", response_headers="HTTP/1.1 200 OK\r\nX-Token: abc\r\n")
    descriptor = ExtractorDescriptor(
        ref_name="tok", expression=r"X-Token: (\w+)", target=TargetSelector.HEADERS
    )
    assert run_extractor(descriptor, sample, {}, context)["tok"] == "abc"


def test_named_variable_target(context):
    descriptor = ExtractorDescriptor(
        ref_name="id", expression=r"id=(\d+)",
        target=TargetSelector.NAMED_VARIABLE, variable_name="payload",
    )
    variables = run_extractor(descriptor, None, {"payload": "id=7"}, context)
    assert variables["id"] == "7"


def test_sub_results_scanned_after_parent(context):
    parent = SampleResult.from_text("id=1")
    parent.sub_results.append(SampleResult.from_text("id=2"))
    descriptor = ExtractorDescriptor(ref_name="id", expression=r"id=(\d+)", match_number=2)
    assert run_extractor(descriptor, parent, {}, context)["id"] == "2"


def test_run_extractors_in_order(products, context):
    descriptors = [
        ExtractorDescriptor(ref_name="first", expression=r"id=(\d+)"),
        ExtractorDescriptor(ref_name="count", expression=r"id=(\d+)", match_number=-1),
    ]
    variables = run_extractors(descriptors, products, {}, context)
    assert variables["first"] == "11"
    assert variables["count_matchNr"] == "3"


def test_first_match_touches_no_variables(products):
    descriptor = ExtractorDescriptor(ref_name="pid", expression=r"id=(\d+)")
    assert first_match(descriptor, products).group(1) == "11"
    assert first_match(ExtractorDescriptor(ref_name="pid", expression="("), products) is None


def test_context_from_config():
    context = ExtractionContext.from_config({"correlation": {"pattern_cache_size": 3}})
    assert context.pattern_cache.max_size == 3
    assert context.html_parser == "html.parser"


def test_injected_pattern_cache_is_used():
    shared = PatternCache(16)
    context = ExtractionContext(pattern_cache=shared)
    assert context.pattern_cache is shared

    sample = SampleResult.from_text("id=42")
    run_extractor(ExtractorDescriptor(ref_name="id", expression=r"id=(\d+)"), sample, {}, context)
    assert r"id=(\d+)" in shared
    assert len(shared) == 1
