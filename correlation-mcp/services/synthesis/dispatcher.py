"""
Extractor strategy dispatch.

For one recorded sample:
    value in response headers          -> header regex
    value (raw or encoded) in body     -> text/html: CSS selector
                                          application/xml, text/xml: XPath
                                          anything else: body regex
    chosen strategy found nothing      -> boundary

Over a list of recorded samples the first sample that yields a descriptor wins.
"""

import logging
from typing import Iterable, Optional

from services.correlations.constants import (
    APPLICATION_XML,
    DEFAULT_BOUNDARY_LENGTH,
    DEFAULT_HTML_PARSER,
    TEXT_HTML,
    TEXT_XML,
)
from services.correlations.model import ExtractorDescriptor, SampleResult
from services.correlations.utils import find_value_form

from .boundary_builder import build_boundary_extractor
from .css_builder import build_css_extractor
from .regex_builder import build_header_regex_extractor, build_regex_extractor
from .xpath_builder import build_xpath_extractor

logger = logging.getLogger(__name__)


def synthesize_for_sample(
    sample: SampleResult,
    parameter: str,
    value: str,
    html_parser: str = DEFAULT_HTML_PARSER,
    boundary_length: int = DEFAULT_BOUNDARY_LENGTH,
) -> Optional[ExtractorDescriptor]:
    """Build an extractor that captures `value` from one recorded response, or None."""
    if not value:
        return None

    label = sample.sample_label
    content_type = sample.content_type or ""
    headers = sample.response_headers or ""

    if headers.strip() and find_value_form(value, headers) is not None:
        logger.debug("'%s' found in response headers of %s", parameter, label)
        descriptor = build_header_regex_extractor(headers, value, parameter, label, content_type)
        if descriptor is not None:
            return descriptor

    body = sample.response_data_as_string()
    if not body.strip() or find_value_form(value, body) is None:
        return None

    if TEXT_HTML in content_type:
        logger.debug("Try to create CSS selector extractor for '%s' in %s", parameter, label)
        descriptor = build_css_extractor(body, value, parameter, label, content_type, html_parser)
    elif APPLICATION_XML in content_type or TEXT_XML in content_type:
        logger.debug("Try to create XPath extractor for '%s' in %s", parameter, label)
        descriptor = build_xpath_extractor(body, value, parameter, label, content_type)
    else:
        logger.debug("Try to create regex extractor for '%s' in %s", parameter, label)
        descriptor = build_regex_extractor(body, value, parameter, label, content_type)

    if descriptor is None:
        logger.debug("Try to create boundary extractor for '%s' in %s", parameter, label)
        descriptor = build_boundary_extractor(body, value, parameter, label, content_type, boundary_length)
    return descriptor


def synthesize_extractor(
    samples: Iterable[SampleResult],
    parameter: str,
    value: str,
    html_parser: str = DEFAULT_HTML_PARSER,
    boundary_length: int = DEFAULT_BOUNDARY_LENGTH,
) -> Optional[ExtractorDescriptor]:
    """
    Build one extractor for a parameter from the first recorded response holding its value.

    Returns:
        ExtractorDescriptor, or None when no response holds the value
        (e.g. a username typed by the user).
    """
    for sample in samples:
        descriptor = synthesize_for_sample(sample, parameter, value, html_parser, boundary_length)
        if descriptor is not None:
            logger.info("Created %s extractor for '%s' from %s",
                        descriptor.kind.value, parameter, sample.sample_label)
            return descriptor
    logger.debug("Value of '%s' not found in any response", parameter)
    return None
