"""
Runtime extraction engine.

Runs an ExtractorDescriptor against a sample result (or a named variable) and
binds the results into the variable store:

    resolve sources -> scan (regex / boundary / css / xpath) -> collect
        -> select (single mode) or bind all (series mode)

Failures are local to one extractor call: a malformed pattern or an invalid
template is logged and the call is skipped, leaving any seeded default value
in place. Nothing here raises into the caller's request loop.
"""

import logging
import random
import re
from typing import Dict, Optional, Tuple

from bs4 import BeautifulSoup
from lxml import etree
from soupsieve import SelectorSyntaxError

from utils.config import load_correlation_config

from .binder import apply_default, bind_series, bind_single
from .constants import DEFAULT_HTML_PARSER, DEFAULT_PATTERN_CACHE_SIZE, TEXT_HTML
from .matchers import (
    Scanner,
    collect_matches,
    scan_boundaries,
    scan_css,
    scan_regex,
    scan_xpath,
    select_match,
)
from .model import (
    ExtractorDescriptor,
    ExtractorKind,
    Match,
    SampleResult,
    SelectionMode,
    TemplateFragment,
    validate_template,
)
from .patterns import PatternCache
from .sources import resolve_sources

logger = logging.getLogger(__name__)


class ExtractionContext:
    """
    State shared by the extractors of one test-plan execution.

    Owns the compiled pattern cache, the random source used for random match
    selection and the HTML parser name.
    """

    def __init__(
        self,
        pattern_cache: Optional[PatternCache] = None,
        rng: Optional[random.Random] = None,
        html_parser: str = DEFAULT_HTML_PARSER,
    ):
        self.pattern_cache = pattern_cache if pattern_cache is not None else PatternCache(DEFAULT_PATTERN_CACHE_SIZE)
        self.rng = rng if rng is not None else random.Random()
        self.html_parser = html_parser

    @classmethod
    def from_config(cls, config: Optional[dict] = None) -> "ExtractionContext":
        settings = load_correlation_config(config)
        return cls(
            pattern_cache=PatternCache(settings["pattern_cache_size"]),
            html_parser=settings["html_parser"],
        )


class CompiledExtractor:
    """
    A descriptor validated and ready to run.

    Compilation checks the locator (regex / CSS / XPath syntax, mandatory
    boundaries) and validates the template against the pattern's group count,
    so configuration errors surface once instead of on every sample.
    """

    def __init__(self, descriptor: ExtractorDescriptor, scanner: Scanner, template: Tuple[TemplateFragment, ...]):
        self.descriptor = descriptor
        self.scanner = scanner
        self.template = template

    @property
    def with_groups(self) -> bool:
        return self.descriptor.kind is ExtractorKind.REGEX

    def process(
        self,
        sample: Optional[SampleResult],
        variables: Dict[str, str],
        context: ExtractionContext,
    ) -> None:
        """Apply this extractor to `sample` and update `variables` in place."""
        descriptor = self.descriptor
        ref_name = descriptor.ref_name
        selection = descriptor.selection
        seeded = apply_default(variables, ref_name, descriptor.default_value, descriptor.default_empty_value)

        inputs = resolve_sources(descriptor, sample, variables, context.html_parser)
        try:
            matches = collect_matches(self.scanner, inputs, selection.requested_count)
        except (etree.XPathError, SelectorSyntaxError, ValueError) as e:
            logger.warning("%s: Error while scanning input. %s", ref_name, e)
            return
        logger.debug("%s: %d match(es) collected", ref_name, len(matches))

        if selection.mode is SelectionMode.ALL:
            bind_series(variables, ref_name, matches, self.template, self.with_groups, keep_ref=seeded)
        else:
            match = select_match(matches, selection, context.rng)
            bind_single(variables, ref_name, match, self.template, self.with_groups)


def compile_extractor(descriptor: ExtractorDescriptor, context: ExtractionContext) -> CompiledExtractor:
    """
    Build the scanner for a descriptor.

    Raises:
        re.error: Malformed regex.
        TemplateError: Template references a group the regex does not define.
        ValueError: Missing mandatory locator fields.
        lxml.etree.XPathSyntaxError / soupsieve.SelectorSyntaxError: Malformed query.
    """
    if not descriptor.ref_name:
        raise ValueError("Extractor has no reference name")

    kind = descriptor.kind
    template: Tuple[TemplateFragment, ...] = ()

    if kind is ExtractorKind.REGEX:
        pattern = context.pattern_cache.get(descriptor.expression)
        template = descriptor.template_fragments
        validate_template(template, pattern.groups)
        scanner = scan_regex(pattern)
    elif kind is ExtractorKind.BOUNDARY:
        if not descriptor.left_boundary or not descriptor.right_boundary:
            raise ValueError(f"Boundary extractor '{descriptor.ref_name}' needs both boundaries")
        scanner = scan_boundaries(descriptor.left_boundary, descriptor.right_boundary)
    elif kind is ExtractorKind.CSS:
        # Validate the selector once against an empty document
        BeautifulSoup("", context.html_parser).select(descriptor.expression)
        scanner = scan_css(descriptor.expression, descriptor.attribute, context.html_parser)
    else:
        as_html = TEXT_HTML in (descriptor.content_type or "")
        scanner = scan_xpath(descriptor.expression, as_html)

    return CompiledExtractor(descriptor, scanner, template)


def run_extractor(
    descriptor: ExtractorDescriptor,
    sample: Optional[SampleResult],
    variables: Dict[str, str],
    context: Optional[ExtractionContext] = None,
) -> Dict[str, str]:
    """
    Compile and run one extractor. Configuration errors are logged, never raised.

    Returns:
        The (mutated) variable store, for convenience.
    """
    if context is None:
        context = ExtractionContext()
    try:
        compiled = compile_extractor(descriptor, context)
    except re.error as e:
        logger.error("Error in pattern: '%s' (%s)", descriptor.expression, e)
        apply_default(variables, descriptor.ref_name, descriptor.default_value, descriptor.default_empty_value)
        return variables
    except (etree.XPathError, SelectorSyntaxError, ValueError) as e:
        # TemplateError is a ValueError
        logger.error("Invalid extractor '%s': %s", descriptor.ref_name, e)
        apply_default(variables, descriptor.ref_name, descriptor.default_value, descriptor.default_empty_value)
        return variables

    compiled.process(sample, variables, context)
    return variables


def run_extractors(
    descriptors,
    sample: Optional[SampleResult],
    variables: Dict[str, str],
    context: Optional[ExtractionContext] = None,
) -> Dict[str, str]:
    """Run several extractors in order against the same sample."""
    if context is None:
        context = ExtractionContext()
    for descriptor in descriptors:
        run_extractor(descriptor, sample, variables, context)
    return variables


def first_match(descriptor: ExtractorDescriptor, sample: SampleResult,
                context: Optional[ExtractionContext] = None) -> Optional[Match]:
    """Return the first match of a descriptor without touching any variables."""
    if context is None:
        context = ExtractionContext()
    try:
        compiled = compile_extractor(descriptor, context)
        inputs = resolve_sources(descriptor, sample, {}, context.html_parser)
        matches = collect_matches(compiled.scanner, inputs, 1)
    except (re.error, etree.XPathError, SelectorSyntaxError, ValueError) as e:
        logger.debug("Extractor '%s' does not compile: %s", descriptor.ref_name, e)
        return None
    return matches[0] if matches else None
