"""
CSS selector extractor synthesis.

Finds the element whose `value` (then `content`) attribute equals the dynamic
value and derives a unique selector for it:

- an element with an id gets "#id", escaped where the id is not a CSS
  identifier (or [id="..."] when the id holds ':' or '.')
- otherwise the path from the root, e.g. "html > body > form > input", with
  ":nth-child(n)" added where siblings share the same tag and classes
"""

import logging
from typing import Optional
from urllib.parse import unquote_plus

import soupsieve
from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from services.correlations.constants import (
    CSS_ID_UNSAFE_CHARS,
    CSS_VALUE_ATTRIBUTES,
    DEFAULT_HTML_PARSER,
    DEFAULT_REF_NAME,
)
from services.correlations.model import ExtractorDescriptor, ExtractorKind, TargetSelector

logger = logging.getLogger(__name__)


def _id_selector(element_id: str) -> str:
    if any(char in element_id for char in CSS_ID_UNSAFE_CHARS):
        return '[id="%s"]' % element_id.replace('"', '\\"')
    return "#" + soupsieve.escape(element_id)


def _classes(element: Tag):
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return classes


def _same_shape_siblings(parent: Tag, element: Tag) -> int:
    """Count children of `parent` that the tag.class selector of `element` also selects."""
    wanted = set(_classes(element))
    return sum(
        1 for child in parent.find_all(element.name, recursive=False)
        if wanted.issubset(_classes(child))
    )


def css_path(element: Tag) -> str:
    """Unique CSS selector for `element`, stopping at the first ancestor with an id."""
    element_id = element.get("id")
    if element_id:
        return _id_selector(element_id)

    selector = element.name.replace(":", "|")
    classes = _classes(element)
    if classes:
        selector += "." + ".".join(soupsieve.escape(name) for name in classes)

    parent = element.parent
    if parent is None or not isinstance(parent, Tag) or parent.name == "[document]":
        return selector

    if _same_shape_siblings(parent, element) > 1:
        position = 1 + sum(1 for sibling in element.previous_siblings if isinstance(sibling, Tag))
        selector += ":nth-child(%d)" % position

    return css_path(parent) + " > " + selector


def find_value_element(soup: BeautifulSoup, value: str):
    """Return (element, attribute) holding `value`, trying value then content."""
    for attribute in CSS_VALUE_ATTRIBUTES:
        element = soup.find(attrs={attribute: value})
        if element is not None:
            return element, attribute
    return None, None


def build_css_extractor(
    response_text: str,
    value: str,
    parameter: str = "",
    sample_label: str = "",
    content_type: str = "",
    parser: str = DEFAULT_HTML_PARSER,
) -> Optional[ExtractorDescriptor]:
    """
    Returns:
        ExtractorDescriptor (kind CSS, match number 1), or None when no element
        carries the value in a value/content attribute.
    """
    if not response_text or not response_text.strip() or not value:
        return None

    soup = BeautifulSoup(response_text, parser)
    decoded = unquote_plus(value)
    element, attribute = find_value_element(soup, decoded)
    if element is None and decoded != value:
        element, attribute = find_value_element(soup, value)
    if element is None:
        logger.debug("No element holds the value of '%s' in %s", parameter, sample_label)
        return None

    selector = css_path(element)
    try:
        selected = soup.select_one(selector)
    except SelectorSyntaxError as e:
        logger.debug("Selector '%s' for '%s' does not parse: %s", selector, parameter, e)
        return None
    if selected is None or selected.get(attribute) != element.get(attribute):
        logger.debug("Selector '%s' does not select the value of '%s'", selector, parameter)
        return None
    logger.debug("CSS selector for '%s': %s [%s]", parameter, selector, attribute)

    return ExtractorDescriptor(
        ref_name=parameter or DEFAULT_REF_NAME,
        kind=ExtractorKind.CSS,
        expression=selector,
        attribute=attribute,
        match_number=1,
        target=TargetSelector.BODY,
        test_name=sample_label,
        parameter=parameter,
        content_type=content_type,
    )
