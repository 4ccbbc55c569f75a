# Correlation MCP Server
# Synthesizes and runs JMeter correlation extractors (regex, boundary, CSS selector, XPath).
from fastmcp import FastMCP, Context  # ✅ FastMCP 2.x import
from typing import Optional, Dict, Any
import logging

from utils.config import load_config

config = load_config()
verbose = config.get("logging", {}).get("verbose", False)
logging.basicConfig(
    level=logging.DEBUG if verbose else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

mcp = FastMCP(
    name="correlation",
)

from services.correlations.analyzer import correlate_capture
from services.extractor_service import synthesize_from_response, run_extractor_on_response

# ----------------------------------------------------------
# Extractor Tools
# ----------------------------------------------------------

@mcp.tool()
async def synthesize_extractor(
    parameter: str,
    value: str,
    response_body: str,
    ctx: Context,
    response_headers: str = "",
    content_type: str = "",
    sample_label: str = "",
) -> dict:
    """
    Create an extractor that captures a dynamic value from a recorded response.
    Args:
        parameter (str): Request parameter name (aliases such as "_csrf(2)" are accepted).
        value (str): The recorded dynamic value.
        response_body (str): Response body the value was served in.
        response_headers (str, optional): Raw response header block, one "Name: value" per line.
        content_type (str, optional): Response content type; selects CSS (text/html) or XPath (xml).
        sample_label (str, optional): Label of the recorded request, kept on the extractor.
        ctx (Context, optional): FastMCP context for state/error details.

    Returns:
        dict: status, message and the extractor definition (or None when the value is not found).
    """
    return await synthesize_from_response(
        parameter, value, response_body, response_headers, content_type, sample_label, ctx
    )

@mcp.tool()
async def run_extractor(
    extractor: Dict[str, Any],
    response_body: str,
    ctx: Context,
    response_headers: str = "",
    content_type: str = "",
    url: str = "",
    variables: Optional[Dict[str, str]] = None,
) -> dict:
    """
    Apply an extractor definition to a response, as JMeter would after a sampler.
    Args:
        extractor (dict): Extractor definition (as returned by synthesize_extractor).
        response_body (str): Response body to scan.
        response_headers (str, optional): Raw response header block.
        content_type (str, optional): Response content type.
        url (str, optional): Response URL (for URL-targeted extractors).
        variables (dict, optional): Current JMeter variables; named-variable extractors read from here.
        ctx (Context, optional): FastMCP context for state/error details.

    Returns:
        dict: status, message and the updated variables (ref, ref_gN, ref_matchNr, ref_N, ...).
    """
    return await run_extractor_on_response(
        extractor, response_body, response_headers, content_type, url, variables, ctx
    )

# ----------------------------------------------------------
# Network Capture Correlation
# ----------------------------------------------------------

@mcp.tool()
async def correlate_network_capture(test_run_id: str, ctx: Context, compare_run_id: str = None) -> dict:
    """
    Synthesize extractors for every dynamic parameter of a recorded network capture.

    Reads:
        <artifacts_root>/<test_run_id>/jmeter/network-capture/*.json
    Writes:
        <artifacts_root>/<test_run_id>/jmeter/correlation_extractors.json
        <artifacts_root>/<test_run_id>/jmeter/correlation_extractors_<timestamp>.jmx

    Args:
        test_run_id (str): Unique identifier for the test run.
        ctx (Context, optional): FastMCP context for state/error details.
        compare_run_id (str, optional): Second recording of the same flow; only
            parameters whose values differ between the two runs are correlated.

    Returns:
        dict: status, message, output paths and number of extractors created.
    """
    return await correlate_capture(test_run_id, ctx, compare_run_id)

# -----------------------------
# Correlation MCP entry point
# -----------------------------
if __name__ == "__main__":
    try:
        mcp.run("stdio")
    except KeyboardInterrupt:
        print("Shutting down Correlation MCP…")
