"""
Regular expression extractor synthesis.

Given a recorded response and a dynamic value, build a regex that captures the
value again in later runs.

Body: the line holding both the parameter name and the value is located with
    ^(.*?)NAME(.*?)VALUE(.*?)$
the value is replaced by a lazy group, and the pattern is rewound to the last
occurrence of the name before the value. A value that ends its line is
anchored to the end of the line. E.g.

    <input name="_csrf" id="_csrf" value="7d1de4...">   ->   _csrf" value="(.*?)">

Header: the header line holding the value is kept up to the value; the right
boundary is the end of the line, or the single character following the value.
"""

import logging
import re
from typing import Optional

from services.correlations.constants import DEFAULT_REF_NAME, DEFAULT_TEMPLATE, LAZY_GROUP
from services.correlations.model import ExtractorDescriptor, ExtractorKind, TargetSelector
from services.correlations.utils import argument_name, find_value_form

logger = logging.getLogger(__name__)

# Right boundary used when the value ends its line
_END_OF_LINE = r"\r?$"
_MULTILINE_FLAG = "(?m)"


def _line_search(text: str, *literals: str) -> Optional[re.Match]:
    """Find the first line holding every literal, in order."""
    pattern = "^" + LAZY_GROUP + LAZY_GROUP.join(re.escape(literal) for literal in literals) + LAZY_GROUP + "$"
    return re.search(pattern, text, re.MULTILINE)


def build_regex_extractor(
    response_text: str,
    value: str,
    parameter: str = "",
    sample_label: str = "",
    content_type: str = "",
) -> Optional[ExtractorDescriptor]:
    """
    Build a body regex extractor for `value`, anchored on the parameter name when given.

    Returns:
        ExtractorDescriptor, or None when the value (with the name before it on
        the same line) is not in the response.
    """
    if not response_text or not value:
        return None
    found_value = find_value_form(value, response_text)
    if found_value is None:
        return None

    name = argument_name(parameter)
    literals = (name, found_value) if name else (found_value,)
    found = _line_search(response_text, *literals)
    if found is None:
        logger.debug("No line holds '%s' followed by its value", name or found_value)
        return None

    line_start = found.start()
    value_start = found.end(len(literals)) - line_start
    line = found.group(0).rstrip("\r")
    before = line[:value_start]
    after = line[value_start + len(found_value):]

    if name:
        # The name may repeat (name="_csrf" id="_csrf"); keep the occurrence nearest the value
        before = before[before.rfind(name):]
        # Stop the trailing context at the next occurrence of the name, keeping
        # the name itself when it directly follows the value
        next_name = after.find(name)
        if next_name >= 0:
            after = after[:max(next_name, len(name))]
    else:
        before = before.lstrip()

    trailing = after.rstrip()
    if trailing:
        expression = re.escape(before) + LAZY_GROUP + re.escape(trailing)
    else:
        expression = _MULTILINE_FLAG + re.escape(before) + LAZY_GROUP + re.escape(after) + _END_OF_LINE
    logger.debug("Regex extractor for '%s': %s", parameter, expression)

    return ExtractorDescriptor(
        ref_name=parameter or name or DEFAULT_REF_NAME,
        kind=ExtractorKind.REGEX,
        expression=expression,
        template=DEFAULT_TEMPLATE,
        match_number=1,
        target=TargetSelector.BODY,
        test_name=sample_label,
        parameter=parameter,
        content_type=content_type,
    )


def build_header_regex_extractor(
    response_headers: str,
    value: str,
    parameter: str = "",
    sample_label: str = "",
    content_type: str = "",
) -> Optional[ExtractorDescriptor]:
    """
    Build a response-header regex extractor for `value`.

    If the value ends its header line the pattern ends with an end-of-line
    anchor; otherwise the character right after the value is the right
    boundary. A single character boundary is a known weak spot: values that
    contain that character are cut short.
    """
    if not response_headers or not value:
        return None
    found_value = find_value_form(value, response_headers)
    if found_value is None:
        return None

    found = _line_search(response_headers, found_value)
    if found is None:
        return None

    line = found.group(0).rstrip("\r")
    value_start = found.end(1) - found.start()
    value_end = value_start + len(found_value)
    before = re.escape(line[:value_start].lstrip())

    if value_end >= len(line):
        expression = _MULTILINE_FLAG + before + LAZY_GROUP + _END_OF_LINE
    else:
        expression = before + LAZY_GROUP + re.escape(line[value_end])
    logger.debug("Header regex extractor for '%s': %s", parameter, expression)

    return ExtractorDescriptor(
        ref_name=parameter or DEFAULT_REF_NAME,
        kind=ExtractorKind.REGEX,
        expression=expression,
        template=DEFAULT_TEMPLATE,
        match_number=1,
        target=TargetSelector.HEADERS,
        test_name=sample_label,
        parameter=parameter,
        content_type=content_type,
    )
