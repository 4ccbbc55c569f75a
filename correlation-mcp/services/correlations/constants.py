"""
Constants and patterns for correlation extraction and synthesis.

Shared across all correlation modules.
"""

import re

# === Variable naming (consumed by other test elements, do not change) ===

REF_MATCH_NR = "_matchNr"
GROUP_SUFFIX = "_g"
UNDERSCORE = "_"


# === Template ===

# "$1$" style group references inside an extractor template
TEMPLATE_GROUP_RE = re.compile(r"\$(\d+)\$", re.DOTALL)

DEFAULT_TEMPLATE = "$1$"


# === Synthesis ===

# Lazy capture group used for the value and variable-length gaps
LAZY_GROUP = "(.*?)"

# Parameter alias written for repeated names, e.g. "_csrf(2)"
PARAMETER_ALIAS_RE = re.compile(r"^(.+?)\((\d+)\)$")

DEFAULT_BOUNDARY_LENGTH = 4

# Attributes searched (in order) by the CSS selector synthesizer
CSS_VALUE_ATTRIBUTES = ("value", "content")

# Characters that cannot appear in a raw "#id" selector
CSS_ID_UNSAFE_CHARS = (":", ".")

XPATH_STYLESHEET = "xpath.xsl"


# === Content types ===

TEXT_HTML = "text/html"
TEXT_XML = "text/xml"
APPLICATION_XML = "application/xml"
APPLICATION_JSON = "application/json"

BEARER_AUTH = "Bearer"
AUTHORIZATION_HEADER = "authorization"


# === Defaults ===

DEFAULT_MATCH_NUMBER = 1
DEFAULT_REF_NAME = "correlated_value"
DEFAULT_PATTERN_CACHE_SIZE = 1000
DEFAULT_HTML_PARSER = "html.parser"
