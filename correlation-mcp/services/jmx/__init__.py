# services/jmx/__init__.py
"""
JMeter JMX Package

- post_processor.py: Regex, Boundary, CSS Selector (HTML) and XPath2 extractors
"""

# Post-Processors (Extractors)
from .post_processor import (
    descriptor_to_element,
    element_to_descriptor,
    append_extractor,
    build_extractor_fragment
)

__all__ = [
    "descriptor_to_element",
    "element_to_descriptor",
    "append_extractor",
    "build_extractor_fragment",
]
