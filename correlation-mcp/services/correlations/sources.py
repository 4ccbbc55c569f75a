"""
Match source resolution.

Turns a descriptor's target selector and a sample (or the variable store, for
named-variable extraction) into the literal strings to scan.
"""

import html
import logging
from typing import Dict, List, Optional

from bs4 import BeautifulSoup

from .constants import DEFAULT_HTML_PARSER
from .model import ExtractorDescriptor, SampleResult, Scope, TargetSelector

logger = logging.getLogger(__name__)


def document_text(body: str, parser: str = DEFAULT_HTML_PARSER) -> str:
    """Visible text of a parsed document, with markup collapsed."""
    if not body:
        return ""
    soup = BeautifulSoup(body, parser)
    for hidden in soup(["script", "style"]):
        hidden.decompose()
    return soup.get_text(separator=" ", strip=True)


def resolve_input(
    sample: SampleResult,
    target: TargetSelector,
    parser: str = DEFAULT_HTML_PARSER,
) -> str:
    """Return the string of `sample` selected by `target`."""
    if target is TargetSelector.URL:
        return sample.url or ""
    if target is TargetSelector.HEADERS:
        return sample.response_headers or ""
    if target is TargetSelector.REQUEST_HEADERS:
        return sample.request_headers or ""
    if target is TargetSelector.STATUS_CODE:
        return sample.response_code or ""
    if target is TargetSelector.STATUS_MESSAGE:
        return sample.response_message or ""
    if target is TargetSelector.BODY_UNESCAPED:
        return html.unescape(sample.response_data_as_string())
    if target is TargetSelector.BODY_AS_DOCUMENT:
        return document_text(sample.response_data_as_string(), parser)
    return sample.response_data_as_string()


def get_sample_list(sample: SampleResult, scope: Scope) -> List[SampleResult]:
    """Samples to scan, in structural order. Only one level of children is visited."""
    if scope is Scope.PARENT:
        return [sample]
    if scope is Scope.CHILDREN:
        return list(sample.sub_results)
    return [sample] + list(sample.sub_results)


def resolve_sources(
    descriptor: ExtractorDescriptor,
    sample: Optional[SampleResult],
    variables: Dict[str, str],
    parser: str = DEFAULT_HTML_PARSER,
) -> List[str]:
    """
    Resolve every string the collector should scan for this descriptor.

    Returns an empty list ("no input") when the named variable is absent;
    the caller then only applies default handling and stale-variable cleanup.
    """
    if descriptor.target is TargetSelector.NAMED_VARIABLE:
        value = variables.get(descriptor.variable_name)
        if value is None:
            logger.warning(
                "No variable '%s' found to process by extractor '%s', skipping processing",
                descriptor.variable_name, descriptor.ref_name,
            )
            return []
        return [value]

    if sample is None:
        return []

    inputs = [resolve_input(s, descriptor.target, parser) for s in get_sample_list(sample, descriptor.scope)]
    logger.debug("Resolved %d input(s) for '%s'", len(inputs), descriptor.ref_name)
    return inputs
