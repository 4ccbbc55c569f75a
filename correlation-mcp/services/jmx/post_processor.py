# services/jmx/post_processor.py
"""
JMeter Post-Processor Elements

Converts extractor descriptors to and from JMeter post-processor elements:
- Regular Expression Extractor (RegexExtractor)
- Boundary Extractor (BoundaryExtractor)
- CSS Selector Extractor (HtmlExtractor)
- XPath2 Extractor (XPath2Extractor)

These extractors are placed inside an HTTP Sampler's hashTree to capture
dynamic values from responses for use in subsequent requests. The integer
match number (0 random, N Nth, -1 all) and the useHeaders codes are written
exactly as JMeter stores them.
"""
import xml.etree.ElementTree as ET
from typing import Dict, Iterable, Optional

from services.correlations.model import ExtractorDescriptor, ExtractorKind, Scope, TargetSelector

# Element tag, GUI class and property prefix per extractor kind
ELEMENT_CLASSES = {
    ExtractorKind.REGEX: ("RegexExtractor", "RegexExtractorGui"),
    ExtractorKind.BOUNDARY: ("BoundaryExtractor", "BoundaryExtractorGui"),
    ExtractorKind.CSS: ("HtmlExtractor", "HtmlExtractorGui"),
    ExtractorKind.XPATH: ("XPath2Extractor", "XPath2ExtractorGui"),
}
KIND_BY_TAG = {tag: kind for kind, (tag, _) in ELEMENT_CLASSES.items()}

# descriptor field -> property name, per kind
PROPERTY_NAMES: Dict[ExtractorKind, Dict[str, str]] = {
    ExtractorKind.REGEX: {
        "ref_name": "RegexExtractor.refname",
        "expression": "RegexExtractor.regex",
        "template": "RegexExtractor.template",
        "default_value": "RegexExtractor.default",
        "match_number": "RegexExtractor.match_number",
    },
    ExtractorKind.BOUNDARY: {
        "ref_name": "BoundaryExtractor.refname",
        "left_boundary": "BoundaryExtractor.lboundary",
        "right_boundary": "BoundaryExtractor.rboundary",
        "default_value": "BoundaryExtractor.default",
        "match_number": "BoundaryExtractor.match_number",
    },
    ExtractorKind.CSS: {
        "ref_name": "HtmlExtractor.refname",
        "expression": "HtmlExtractor.expr",
        "attribute": "HtmlExtractor.attribute",
        "default_value": "HtmlExtractor.default",
        "match_number": "HtmlExtractor.match_number",
    },
    ExtractorKind.XPATH: {
        "ref_name": "XPathExtractor2.refname",
        "expression": "XPathExtractor2.xpathQuery",
        "default_value": "XPathExtractor2.default",
        "match_number": "XPathExtractor2.matchNumber",
    },
}

# Kinds whose element carries a useHeaders field
USE_HEADERS_PROPS = {
    ExtractorKind.REGEX: "RegexExtractor.useHeaders",
    ExtractorKind.BOUNDARY: "BoundaryExtractor.useHeaders",
}
DEFAULT_EMPTY_PROPS = {
    ExtractorKind.REGEX: "RegexExtractor.default_empty_value",
    ExtractorKind.BOUNDARY: "BoundaryExtractor.default_empty_value",
    ExtractorKind.CSS: "HtmlExtractor.default_empty_value",
}

SCOPE_PROP = "Sample.scope"
SCOPE_VARIABLE_PROP = "Scope.variable"
SCOPE_VARIABLE = "variable"
HTML_EXTRACTOR_IMPL = "HtmlExtractor.extractor_impl"


def descriptor_to_element(descriptor: ExtractorDescriptor, testname: str = None) -> ET.Element:
    """
    Creates the JMeter post-processor element for an extractor descriptor.

    Args:
        descriptor: Extractor configuration
        testname: Display name in JMeter (defaults to "Extract {ref_name}")

    Returns:
        ET.Element: RegexExtractor, BoundaryExtractor, HtmlExtractor or XPath2Extractor

    Example JMX output (extracting from header):
        <RegexExtractor guiclass="RegexExtractorGui"
                       testclass="RegexExtractor"
                       testname="Extract session_token" enabled="true">
          <stringProp name="RegexExtractor.useHeaders">true</stringProp>
          <stringProp name="RegexExtractor.refname">session_token</stringProp>
          <stringProp name="RegexExtractor.regex">X-Session-Token: (.*?)\\r?$</stringProp>
          <stringProp name="RegexExtractor.template">$1$</stringProp>
          <stringProp name="RegexExtractor.default"></stringProp>
          <stringProp name="RegexExtractor.match_number">1</stringProp>
          <stringProp name="Sample.scope">all</stringProp>
        </RegexExtractor>
    """
    kind = descriptor.kind
    tag, guiclass = ELEMENT_CLASSES[kind]
    if testname is None:
        testname = f"Extract {descriptor.ref_name}"

    extractor = ET.Element(tag, attrib={
        "guiclass": guiclass,
        "testclass": tag,
        "testname": testname,
        "enabled": "true"
    })

    # Field to check; a named variable is expressed through the scope instead
    if kind in USE_HEADERS_PROPS:
        target = descriptor.target
        if target is TargetSelector.NAMED_VARIABLE:
            target = TargetSelector.BODY
        ET.SubElement(extractor, "stringProp", attrib={
            "name": USE_HEADERS_PROPS[kind]
        }).text = target.value

    for field_name, prop_name in PROPERTY_NAMES[kind].items():
        ET.SubElement(extractor, "stringProp", attrib={
            "name": prop_name
        }).text = str(getattr(descriptor, field_name))

    if kind in DEFAULT_EMPTY_PROPS:
        ET.SubElement(extractor, "boolProp", attrib={
            "name": DEFAULT_EMPTY_PROPS[kind]
        }).text = "true" if descriptor.default_empty_value else "false"

    if kind is ExtractorKind.CSS:
        ET.SubElement(extractor, "stringProp", attrib={"name": HTML_EXTRACTOR_IMPL}).text = "JSOUP"
    if kind is ExtractorKind.XPATH:
        ET.SubElement(extractor, "stringProp", attrib={"name": "XPathExtractor2.fragment"}).text = "false"

    # Scope: all / parent / children, or a named JMeter variable
    if descriptor.target is TargetSelector.NAMED_VARIABLE:
        ET.SubElement(extractor, "stringProp", attrib={"name": SCOPE_PROP}).text = SCOPE_VARIABLE
        ET.SubElement(extractor, "stringProp", attrib={
            "name": SCOPE_VARIABLE_PROP
        }).text = descriptor.variable_name
    else:
        ET.SubElement(extractor, "stringProp", attrib={"name": SCOPE_PROP}).text = descriptor.scope.value

    return extractor


def _props(element: ET.Element) -> Dict[str, str]:
    return {
        prop.get("name"): prop.text or ""
        for prop in element
        if prop.tag in ("stringProp", "boolProp", "intProp")
    }


def element_to_descriptor(element: ET.Element) -> Optional[ExtractorDescriptor]:
    """
    Reads an extractor descriptor back from a JMeter post-processor element.

    Returns:
        ExtractorDescriptor, or None if the element is not a supported extractor.

    Raises:
        ValueError: If the match number or useHeaders code is malformed.
    """
    kind = KIND_BY_TAG.get(element.tag)
    if kind is None:
        return None

    props = _props(element)
    values = {
        field_name: props.get(prop_name, "")
        for field_name, prop_name in PROPERTY_NAMES[kind].items()
    }
    values["match_number"] = int(values.get("match_number") or 0)
    if kind in DEFAULT_EMPTY_PROPS:
        values["default_empty_value"] = props.get(DEFAULT_EMPTY_PROPS[kind], "false") == "true"

    target = TargetSelector.parse(props.get(USE_HEADERS_PROPS.get(kind, ""), ""))
    scope_code = props.get(SCOPE_PROP) or Scope.PARENT.value
    if scope_code == SCOPE_VARIABLE:
        target = TargetSelector.NAMED_VARIABLE
        values["variable_name"] = props.get(SCOPE_VARIABLE_PROP, "")
        scope = Scope.ALL
    else:
        scope = Scope(scope_code)

    return ExtractorDescriptor(kind=kind, target=target, scope=scope, **values)


# === Helper function to append extractor to sampler hashTree ===
def append_extractor(sampler_hash_tree: ET.Element, extractor: ET.Element) -> None:
    """
    Appends an extractor element to a sampler's hashTree.

    In JMeter's JMX structure, extractors must be placed inside the
    HTTP Sampler's hashTree, followed by their own empty hashTree.

    Example structure after appending:
        <hashTree>  <!-- sampler_hash_tree -->
          <RegexExtractor>...</RegexExtractor>
          <hashTree/>  <!-- empty hashTree for extractor -->
        </hashTree>
    """
    sampler_hash_tree.append(extractor)
    sampler_hash_tree.append(ET.Element("hashTree"))


def build_extractor_fragment(descriptors: Iterable[ExtractorDescriptor],
                             fragment_name: str = "Correlation Extractors") -> ET.Element:
    """
    Creates a JMX document holding a Test Fragment with one extractor per descriptor.

    Each extractor's testname records the sample it should be attached to,
    so the fragment can be copied under the matching HTTP samplers.

    Returns:
        ET.Element: The jmeterTestPlan root element
    """
    jmeter_test_plan = ET.Element("jmeterTestPlan", attrib={
        "version": "1.2",
        "properties": "5.0",
        "jmeter": "5.6.3"
    })
    hash_tree = ET.SubElement(jmeter_test_plan, "hashTree")
    ET.SubElement(hash_tree, "TestFragmentController", attrib={
        "guiclass": "TestFragmentControllerGui",
        "testclass": "TestFragmentController",
        "testname": fragment_name,
        "enabled": "true"
    })
    fragment_hash_tree = ET.SubElement(hash_tree, "hashTree")

    for descriptor in descriptors:
        testname = f"Extract {descriptor.ref_name}"
        if descriptor.test_name:
            testname += f" ({descriptor.test_name})"
        append_extractor(fragment_hash_tree, descriptor_to_element(descriptor, testname))

    return jmeter_test_plan
