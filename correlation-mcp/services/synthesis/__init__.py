"""
Extractor synthesis package.

Builds extractor descriptors (regex, boundary, CSS selector, XPath) from a
recorded response and a dynamic value observed in a later request.
"""

from .boundary_builder import build_boundary_extractor
from .css_builder import build_css_extractor
from .dispatcher import synthesize_extractor, synthesize_for_sample
from .regex_builder import build_header_regex_extractor, build_regex_extractor
from .xpath_builder import build_xpath_extractor

__all__ = [
    "build_boundary_extractor",
    "build_css_extractor",
    "build_header_regex_extractor",
    "build_regex_extractor",
    "build_xpath_extractor",
    "synthesize_extractor",
    "synthesize_for_sample",
]
