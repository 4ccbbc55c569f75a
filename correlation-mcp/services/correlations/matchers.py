"""
Match collection and selection.

Collection: scan each resolved source in order, appending matches to one list,
and stop as soon as the requested count is reached (even between sources).
Selection: pick one match by fixed index or at random.

The scanners below are the per-source "pattern engines":
- scan_regex: non-overlapping global regex search
- scan_boundaries: literal left/right boundary search
- scan_css: CSS selector over a parsed HTML document
- scan_xpath: XPath query over a parsed XML/HTML document
"""

import logging
import random
import re
from itertools import islice
from typing import Callable, Iterable, Iterator, List, Optional, Pattern, Sequence, Tuple

from bs4 import BeautifulSoup
from lxml import etree, html as lxml_html

from .constants import DEFAULT_HTML_PARSER
from .model import Match, MatchSelection, SelectionMode

logger = logging.getLogger(__name__)

# The text is already decoded, so a declared encoding no longer applies
_XML_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>")

Scanner = Callable[[str], Iterator[Match]]


# ============================================================
# Scanners
# ============================================================

def scan_regex(pattern: Pattern) -> Scanner:
    """Each match's end offset is the start of the next search."""
    def scan(text: str) -> Iterator[Match]:
        for found in pattern.finditer(text):
            logger.debug("Regex match found at %d", found.start())
            yield Match.from_re(found)
    return scan


def scan_boundaries(left: str, right: str) -> Scanner:
    """
    Yield the text between every left boundary and the next right boundary.

    The next left boundary is searched from one character after the previous
    one, so left boundaries may overlap the previously extracted value.
    """
    def scan(text: str) -> Iterator[Match]:
        start = -1
        while True:
            start = text.find(left, start + 1)
            if start < 0:
                return
            end = text.find(right, start + len(left))
            if end < 0:
                return
            yield Match.of(text[start + len(left):end])
    return scan


def scan_css(selector: str, attribute: str = "", parser: str = DEFAULT_HTML_PARSER) -> Scanner:
    """Yield the attribute (or text, when no attribute is set) of every selected element."""
    def scan(text: str) -> Iterator[Match]:
        if not text:
            return
        soup = BeautifulSoup(text, parser)
        for element in soup.select(selector):
            if attribute:
                value = element.get(attribute, "")
                if isinstance(value, list):
                    value = " ".join(value)
            else:
                value = element.get_text()
            yield Match.of(value)
    return scan


def _xpath_value(node) -> str:
    if isinstance(node, etree._Element):
        return "".join(node.itertext())
    if isinstance(node, bool):
        return "true" if node else "false"
    if isinstance(node, float) and node.is_integer():
        return str(int(node))
    return str(node)


def parse_document(text: str, as_html: bool = False):
    """Parse XML (or HTML when `as_html`) text into an lxml tree."""
    data = _XML_DECLARATION_RE.sub("", text, count=1).encode("utf-8")
    if as_html:
        return lxml_html.document_fromstring(data)
    return etree.fromstring(data, parser=etree.XMLParser(resolve_entities=False, no_network=True))


def scan_xpath(query: str, as_html: bool = False) -> Scanner:
    """
    Yield the string value of every node selected by `query`.

    Raises:
        lxml.etree.XPathError: If the query is malformed (raised on first scan).
    """
    compiled = etree.XPath(query)

    def scan(text: str) -> Iterator[Match]:
        if not text or not text.strip():
            return
        try:
            document = parse_document(text, as_html)
        except (etree.XMLSyntaxError, etree.ParserError, ValueError) as e:
            logger.warning("Unable to parse document for XPath '%s': %s", query, e)
            return
        result = compiled(document)
        nodes = result if isinstance(result, list) else [result]
        for node in nodes:
            yield Match.of(_xpath_value(node))
    return scan


# ============================================================
# Collection
# ============================================================

def collect_matches(scan: Scanner, inputs: Iterable[str], count: int = 0) -> Tuple[Match, ...]:
    """
    Build the ordered match list across all inputs.

    Args:
        scan: Per-source scanner.
        inputs: Resolved source strings in structural order.
        count: Stop once this many matches are collected; <= 0 scans everything.

    Returns:
        Immutable tuple of matches in scan order.
    """
    matches: List[Match] = []
    for text in inputs:
        if text is None:
            continue
        if count > 0:
            matches.extend(islice(scan(text), count - len(matches)))
            if len(matches) >= count:
                break
        else:
            matches.extend(scan(text))
    return tuple(matches)


# ============================================================
# Selection
# ============================================================

def select_match(
    matches: Sequence[Match],
    selection: MatchSelection,
    rng: Optional[random.Random] = None,
) -> Optional[Match]:
    """
    Pick the match for single-mode binding.

    Returns None (no match) for an empty list, an out-of-range index, or
    series selection, which binds every match instead of picking one.
    """
    if not matches:
        return None
    if selection.mode is SelectionMode.RANDOM:
        return (rng or random).choice(matches)
    if selection.mode is SelectionMode.FIXED:
        if selection.index > len(matches):
            return None
        return matches[selection.index - 1]
    return None
