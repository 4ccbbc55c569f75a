import xml.etree.ElementTree as ET

from services.correlations.model import ExtractorDescriptor, ExtractorKind, Scope, TargetSelector
from services.jmx.post_processor import (
    append_extractor,
    build_extractor_fragment,
    descriptor_to_element,
    element_to_descriptor,
)


def _props(element):
    return {prop.get("name"): prop.text for prop in element}


def test_regex_extractor_element():
    descriptor = ExtractorDescriptor(
        ref_name="token",
        expression=r"X-Token: (.*?)\r?$",
        match_number=-1,
        default_value="NOT_FOUND",
        target=TargetSelector.HEADERS,
    )
    element = descriptor_to_element(descriptor)

    assert element.tag == "RegexExtractor"
    assert element.get("testname") == "Extract token"
    props = _props(element)
    assert props["RegexExtractor.useHeaders"] == "true"
    assert props["RegexExtractor.refname"] == "token"
    assert props["RegexExtractor.template"] == "$1$"
    assert props["RegexExtractor.match_number"] == "-1"
    assert props["RegexExtractor.default_empty_value"] == "false"
    assert props["Sample.scope"] == "all"


def test_element_round_trip_keeps_locator_fields():
    descriptors = [
        ExtractorDescriptor(ref_name="r", expression="id=(\\d+)", template="$1$", match_number=0,
                            target=TargetSelector.URL, scope=Scope.CHILDREN),
        ExtractorDescriptor(ref_name="b", kind=ExtractorKind.BOUNDARY, left_boundary="4,['",
                            right_boundary="',9]", default_empty_value=True),
        ExtractorDescriptor(ref_name="c", kind=ExtractorKind.CSS, expression="#prodId", attribute="value"),
        ExtractorDescriptor(ref_name="x", kind=ExtractorKind.XPATH, expression="/token[1]/@value",
                            match_number=3),
    ]
    for descriptor in descriptors:
        loaded = element_to_descriptor(descriptor_to_element(descriptor))
        assert loaded.kind is descriptor.kind
        assert loaded.ref_name == descriptor.ref_name
        assert loaded.expression == descriptor.expression
        assert loaded.left_boundary == descriptor.left_boundary
        assert loaded.right_boundary == descriptor.right_boundary
        assert loaded.attribute == descriptor.attribute
        assert loaded.match_number == descriptor.match_number
        assert loaded.default_empty_value == descriptor.default_empty_value
        assert loaded.target is descriptor.target
        assert loaded.scope is descriptor.scope


def test_named_variable_is_written_as_scope():
    descriptor = ExtractorDescriptor(
        ref_name="id", expression="id=(\\d+)",
        target=TargetSelector.NAMED_VARIABLE, variable_name="payload",
    )
    props = _props(descriptor_to_element(descriptor))
    assert props["RegexExtractor.useHeaders"] == "false"
    assert props["Sample.scope"] == "variable"
    assert props["Scope.variable"] == "payload"

    loaded = element_to_descriptor(descriptor_to_element(descriptor))
    assert loaded.target is TargetSelector.NAMED_VARIABLE
    assert loaded.variable_name == "payload"


def test_missing_scope_reads_as_parent():
    element = ET.fromstring(
        '<BoundaryExtractor testclass="BoundaryExtractor">'
        '<stringProp name="BoundaryExtractor.refname">b</stringProp>'
        '<stringProp name="BoundaryExtractor.lboundary">[</stringProp>'
        '<stringProp name="BoundaryExtractor.rboundary">]</stringProp>'
        '<stringProp name="BoundaryExtractor.match_number"></stringProp>'
        '</BoundaryExtractor>'
    )
    loaded = element_to_descriptor(element)
    assert loaded.scope is Scope.PARENT
    assert loaded.match_number == 0
    assert loaded.target is TargetSelector.BODY


def test_unsupported_element():
    assert element_to_descriptor(ET.Element("JSONPostProcessor")) is None


def test_append_extractor_adds_empty_hash_tree():
    hash_tree = ET.Element("hashTree")
    append_extractor(hash_tree, ET.Element("RegexExtractor"))
    assert [child.tag for child in hash_tree] == ["RegexExtractor", "hashTree"]


def test_fragment_holds_one_extractor_per_descriptor():
    descriptors = [
        ExtractorDescriptor(ref_name="_csrf", kind=ExtractorKind.CSS, expression="#csrf",
                            attribute="value", test_name="0 GET /login"),
        ExtractorDescriptor(ref_name="id", expression="id=(\\d+)"),
    ]
    root = build_extractor_fragment(descriptors)

    assert root.tag == "jmeterTestPlan"
    fragment_tree = root.find("hashTree/hashTree")
    assert [child.tag for child in fragment_tree] == ["HtmlExtractor", "hashTree", "RegexExtractor", "hashTree"]
    assert fragment_tree[0].get("testname") == "Extract _csrf (0 GET /login)"
    assert root.find("hashTree/TestFragmentController") is not None
