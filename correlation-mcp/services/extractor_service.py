# services/extractor_service.py

from fastmcp import Context  # ✅ FastMCP 2.x import
import logging
from typing import Any, Dict, Optional

from services.correlations.extractors import ExtractionContext, run_extractor
from services.correlations.model import ExtractorDescriptor, SampleResult
from services.synthesis.dispatcher import synthesize_for_sample
from utils.config import load_config, load_correlation_config

# Load configuration
CONFIG = load_config()
SETTINGS = load_correlation_config(CONFIG)

logger = logging.getLogger(__name__)

# Shared across tool calls so compiled patterns are reused
EXTRACTION_CONTEXT = ExtractionContext.from_config(CONFIG)

# ----------------------------------------------------------
# Helper Functions
# ----------------------------------------------------------

def _sample(response_body: str, response_headers: str = "", content_type: str = "",
            url: str = "", sample_label: str = "") -> SampleResult:
    return SampleResult.from_text(
        response_body or "",
        response_headers=response_headers or "",
        content_type=content_type or "",
        url=url or "",
        sample_label=sample_label or "",
    )

# ----------------------------------------------------------
# Tool implementations
# ----------------------------------------------------------

async def synthesize_from_response(
    parameter: str,
    value: str,
    response_body: str,
    response_headers: str,
    content_type: str,
    sample_label: str,
    ctx: Context,
) -> Dict[str, Any]:
    """
    Build an extractor for `value` from one recorded response.

    Returns:
        dict: {"status": "OK" | "NOT_FOUND", "message": str, "extractor": dict | None}
    """
    sample = _sample(response_body, response_headers, content_type, sample_label=sample_label)
    descriptor = synthesize_for_sample(
        sample, parameter, value,
        html_parser=SETTINGS["html_parser"],
        boundary_length=SETTINGS["boundary_length"],
    )
    if descriptor is None:
        msg = f"Value of '{parameter}' not found in the response"
        await ctx.info(msg)
        return {"status": "NOT_FOUND", "message": msg, "extractor": None}

    msg = f"Created {descriptor.kind.value} extractor for '{parameter}'"
    await ctx.info(msg)
    return {"status": "OK", "message": msg, "extractor": descriptor.to_dict()}


async def run_extractor_on_response(
    extractor: Dict[str, Any],
    response_body: str,
    response_headers: str,
    content_type: str,
    url: str,
    variables: Optional[Dict[str, str]],
    ctx: Context,
) -> Dict[str, Any]:
    """
    Run an extractor descriptor against a response and return the updated variables.

    Returns:
        dict: {"status": "OK" | "ERROR", "message": str, "variables": dict}
    """
    try:
        descriptor = ExtractorDescriptor.from_dict(extractor)
    except (KeyError, TypeError, ValueError) as e:
        msg = f"Invalid extractor definition: {e}"
        await ctx.error(msg)
        return {"status": "ERROR", "message": msg, "variables": dict(variables or {})}

    store = dict(variables or {})
    run_extractor(descriptor, _sample(response_body, response_headers, content_type, url), store,
                  EXTRACTION_CONTEXT)
    msg = f"Extractor '{descriptor.ref_name}' applied"
    logger.debug("%s: %s", msg, store)
    await ctx.info(msg)
    return {"status": "OK", "message": msg, "variables": store}
