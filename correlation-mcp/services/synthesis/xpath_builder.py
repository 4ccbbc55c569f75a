"""
XPath extractor synthesis.

The response is run through an XSL stylesheet that lists every attribute and
text node of the document together with its absolute, position-indexed path:

    /token[1]/@value='7d1de4...'
    /token[1]/_csrf[1]/text()='7d1de4...'

The first path whose value equals the dynamic value becomes the query.
"""

import logging
from functools import lru_cache
from importlib import resources
from typing import Iterator, Optional, Tuple
from urllib.parse import unquote_plus

from lxml import etree

from services.correlations.constants import DEFAULT_REF_NAME, TEXT_HTML, XPATH_STYLESHEET
from services.correlations.matchers import parse_document
from services.correlations.model import ExtractorDescriptor, ExtractorKind, TargetSelector

logger = logging.getLogger(__name__)

_PATH_SEPARATOR = "='"


@lru_cache(maxsize=1)
def _stylesheet() -> Optional[etree.XSLT]:
    stylesheet = resources.files(__package__).joinpath("resources").joinpath(XPATH_STYLESHEET)
    if not stylesheet.is_file():
        logger.error("XPath stylesheet '%s' not found", XPATH_STYLESHEET)
        return None
    with stylesheet.open("rb") as f:
        return etree.XSLT(etree.parse(f))


def list_node_paths(response_text: str, as_html: bool = False) -> Iterator[Tuple[str, str]]:
    """
    Yield (xpath, value) for every attribute and text node of the document.

    Yields nothing when the text does not parse or the stylesheet is missing.
    """
    transform = _stylesheet()
    if transform is None:
        return
    try:
        document = parse_document(response_text, as_html)
    except (etree.XMLSyntaxError, etree.ParserError, ValueError) as e:
        logger.debug("Response is not a parsable document: %s", e)
        return

    for line in str(transform(document)).splitlines():
        path, separator, value = line.partition(_PATH_SEPARATOR)
        if not separator:
            continue
        if value.endswith("'"):
            value = value[:-1]
        yield path, value


def build_xpath_extractor(
    response_text: str,
    value: str,
    parameter: str = "",
    sample_label: str = "",
    content_type: str = "",
) -> Optional[ExtractorDescriptor]:
    """
    Returns:
        ExtractorDescriptor (kind XPATH, match number 1), or None when the
        response is not XML or no node holds the value.
    """
    if not response_text or not response_text.strip() or not value:
        return None

    candidates = {unquote_plus(value), value}
    as_html = TEXT_HTML in (content_type or "")
    for path, node_value in list_node_paths(response_text, as_html):
        if node_value in candidates:
            logger.debug("XPath for '%s': %s", parameter, path)
            return ExtractorDescriptor(
                ref_name=parameter or DEFAULT_REF_NAME,
                kind=ExtractorKind.XPATH,
                expression=path,
                match_number=1,
                target=TargetSelector.BODY,
                test_name=sample_label,
                parameter=parameter,
                content_type=content_type,
            )

    logger.debug("No node holds the value of '%s' in %s", parameter, sample_label)
    return None
