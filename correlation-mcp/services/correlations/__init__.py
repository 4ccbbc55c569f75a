"""
Correlation runtime package.

Runs extractor descriptors (regex, boundary, CSS selector, XPath) against
sample results and binds the extracted values into a variable store, using
the JMeter variable naming contract (ref, ref_gN, ref_matchNr, ref_N, ...).

The capture orchestrator lives in .analyzer and is imported by the server
directly, since it depends on the synthesis package.
"""

from .extractors import (
    CompiledExtractor,
    ExtractionContext,
    compile_extractor,
    first_match,
    run_extractor,
    run_extractors,
)
from .model import (
    ExtractorDescriptor,
    ExtractorKind,
    Match,
    MatchSelection,
    SampleResult,
    Scope,
    TargetSelector,
    TemplateError,
)
from .patterns import PatternCache

__all__ = [
    "CompiledExtractor",
    "ExtractionContext",
    "ExtractorDescriptor",
    "ExtractorKind",
    "Match",
    "MatchSelection",
    "PatternCache",
    "SampleResult",
    "Scope",
    "TargetSelector",
    "TemplateError",
    "compile_extractor",
    "first_match",
    "run_extractor",
    "run_extractors",
]
__version__ = "0.1.0"
