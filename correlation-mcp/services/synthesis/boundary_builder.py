"""
Boundary extractor synthesis.

The left boundary is the (up to) 4 characters right before the first
occurrence of the value, the right boundary the (up to) 4 characters right
after it. This is imprecise when the boundary text repeats before the value
or the value sits at the edge of the response.
"""

import logging
from typing import Optional

from services.correlations.constants import DEFAULT_BOUNDARY_LENGTH, DEFAULT_REF_NAME
from services.correlations.model import ExtractorDescriptor, ExtractorKind, TargetSelector
from services.correlations.utils import find_value_form

logger = logging.getLogger(__name__)


def build_boundary_extractor(
    response_text: str,
    value: str,
    parameter: str = "",
    sample_label: str = "",
    content_type: str = "",
    boundary_length: int = DEFAULT_BOUNDARY_LENGTH,
) -> Optional[ExtractorDescriptor]:
    """
    Returns:
        ExtractorDescriptor with match number 1, or None when the value is
        absent or has no text on one of its sides.
    """
    found_value = find_value_form(value, response_text)
    if found_value is None:
        return None

    start = response_text.index(found_value)
    end = start + len(found_value)
    left = response_text[max(0, start - boundary_length):start]
    right = response_text[end:end + boundary_length]
    if not left or not right:
        logger.debug("No boundary around '%s' in %s", parameter, sample_label)
        return None

    return ExtractorDescriptor(
        ref_name=parameter or DEFAULT_REF_NAME,
        kind=ExtractorKind.BOUNDARY,
        left_boundary=left,
        right_boundary=right,
        match_number=1,
        target=TargetSelector.BODY,
        test_name=sample_label,
        parameter=parameter,
        content_type=content_type,
    )
