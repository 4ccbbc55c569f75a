"""
Main correlation orchestrator.

Turns a recorded network capture into correlation extractors:
- Step 1: Flatten the capture into ordered entries (excluded domains dropped)
- Step 2: Collect candidate parameters (optionally diffed against a second run)
- Step 3: Synthesize one extractor per candidate from the recorded responses
- Step 4: Save correlation_extractors.json and a JMX fragment
"""

import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from fastmcp import Context

from services.jmx.post_processor import build_extractor_fragment
from services.synthesis.dispatcher import synthesize_extractor
from utils.config import load_config, load_correlation_config
from utils.file_utils import load_network_capture, save_correlation_extractors, save_jmx_fragment

from .candidates import build_parameter_map, extract_correlation_candidates
from .model import ExtractorDescriptor, SampleResult
from .utils import is_excluded_url

logger = logging.getLogger(__name__)

# === Configuration ===
CONFIG = load_config()
SETTINGS = load_correlation_config(CONFIG)


# === Capture Loading ===

def _iter_entries(
    network_data: Dict[str, Any],
    exclude_domains: Optional[List[str]] = None
) -> List[Tuple[int, int, str, Dict[str, Any]]]:
    """
    Flatten step-grouped data into ordered list of (entry_index, step_number, step_label, entry).

    Args:
        network_data: The loaded network capture data
        exclude_domains: Entries on these domains (APM, analytics, etc.) are skipped

    Returns entries in sequential order with a global entry_index.
    """
    if exclude_domains is None:
        exclude_domains = SETTINGS["exclude_domains"]

    flattened: List[Tuple[int, int, str, Dict[str, Any]]] = []
    excluded_count = 0
    global_index = 0

    for step_label, entries in network_data.items():
        for entry in entries:
            if is_excluded_url(entry.get("url", ""), exclude_domains):
                excluded_count += 1
                continue

            step_meta = entry.get("step") or {}
            step_number = step_meta.get("step_number")
            if step_number is None:
                match = re.match(r"Step\s+(\d+)", step_label)
                step_number = int(match.group(1)) if match else 0
            flattened.append((global_index, step_number, step_label, entry))
            global_index += 1

    if excluded_count > 0:
        logger.info("Excluded %d entries from non-essential domains (APM, analytics, etc.)", excluded_count)

    # Sort by step_number, preserving order within steps
    flattened.sort(key=lambda x: (x[1], x[0]))

    # Re-index after sorting
    return [(i, sn, sl, e) for i, (_, sn, sl, e) in enumerate(flattened)]


def _headers_to_text(headers: Any) -> str:
    """Render a captured header dict as a raw header block, one "Name: value" per line."""
    if not headers:
        return ""
    if isinstance(headers, str):
        return headers
    return "\n".join(f"{name}: {value}" for name, value in headers.items())


def _content_type(headers: Any) -> str:
    if not isinstance(headers, dict):
        return ""
    for name, value in headers.items():
        if str(name).lower() == "content-type":
            return str(value)
    return ""


def sample_from_entry(entry_index: int, entry: Dict[str, Any]) -> SampleResult:
    """Build a SampleResult from one network capture entry."""
    url = entry.get("url", "")
    method = (entry.get("method") or "GET").upper()
    path = urlparse(url).path or "/"
    response_headers = entry.get("response_headers") or {}
    body = entry.get("response") or ""
    if not isinstance(body, str):
        body = str(body)
    status = entry.get("status")

    return SampleResult.from_text(
        body,
        url=url,
        response_headers=_headers_to_text(response_headers),
        request_headers=_headers_to_text(entry.get("headers")),
        response_code="" if status is None else str(status),
        content_type=_content_type(response_headers),
        sample_label=f"{entry_index} {method} {path}",
    )


# === Main Correlation Logic ===

def correlate_entries(
    network_data: Dict[str, Any],
    compare_data: Optional[Dict[str, Any]] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> Tuple[List[ExtractorDescriptor], List[Dict[str, str]], List[str]]:
    """
    Synthesize extractors for the dynamic parameters of a capture.

    Without `compare_data` every non-blank parameter the session sent is a
    candidate; values never seen in a response (typed user input) simply
    yield no extractor.

    Returns:
        (extractors, candidates, unresolved parameter names)
    """
    settings = settings or SETTINGS
    entries = _iter_entries(network_data, settings["exclude_domains"])
    samples = [sample_from_entry(index, entry) for index, _, _, entry in entries]
    parameters = build_parameter_map(entry for _, _, _, entry in entries)

    if compare_data is not None:
        compare_entries = _iter_entries(compare_data, settings["exclude_domains"])
        other = build_parameter_map(entry for _, _, _, entry in compare_entries)
        candidates = extract_correlation_candidates(parameters, other)
    else:
        candidates = [
            {"parameter": name, "first_value": value, "second_value": ""}
            for name, value in parameters.items()
            if value and value.strip()
        ]
    logger.info("%d correlation candidate(s) from %d entries", len(candidates), len(entries))

    extractors: List[ExtractorDescriptor] = []
    unresolved: List[str] = []
    for candidate in candidates:
        descriptor = synthesize_extractor(
            samples,
            candidate["parameter"],
            candidate["first_value"],
            html_parser=settings["html_parser"],
            boundary_length=settings["boundary_length"],
        )
        if descriptor is None:
            unresolved.append(candidate["parameter"])
        else:
            extractors.append(descriptor)

    return extractors, candidates, unresolved


# === Public API ===

async def correlate_capture(test_run_id: str, ctx: Context, compare_run_id: str = None) -> Dict[str, Any]:
    """
    Main entry point for the correlate_network_capture MCP tool.

    Synthesizes extractors for a run's network capture and writes
    correlation_extractors.json plus a JMX fragment.

    Args:
        test_run_id: Unique identifier for the test run.
        ctx: FastMCP context for logging.
        compare_run_id: Optional second recording of the same flow.

    Returns:
        dict with status, message, extractors_path, jmx_path, count.
    """
    try:
        capture_path, network_data = load_network_capture(test_run_id)
        compare_data = None
        if compare_run_id:
            _, compare_data = load_network_capture(compare_run_id)
    except (FileNotFoundError, ValueError) as e:
        msg = str(e)
        await ctx.error(msg)
        return {
            "status": "ERROR",
            "message": msg,
            "test_run_id": test_run_id,
            "extractors_path": None,
            "jmx_path": None,
            "count": 0,
        }

    await ctx.info(f"Loaded network capture: {capture_path}")
    extractors, candidates, unresolved = correlate_entries(network_data, compare_data)

    result = {
        "capture_file": os.path.basename(capture_path),
        "test_run_id": test_run_id,
        "compare_run_id": compare_run_id,
        "analysis_timestamp": datetime.now(timezone.utc).isoformat(),
        "candidates": candidates,
        "extractors": [descriptor.to_dict() for descriptor in extractors],
        "unresolved": unresolved,
        "summary": {
            "total_candidates": len(candidates),
            "extractors": len(extractors),
            "unresolved": len(unresolved),
            "by_kind": {
                kind: sum(1 for d in extractors if d.kind.value == kind)
                for kind in sorted({d.kind.value for d in extractors})
            },
        },
    }

    try:
        extractors_path = save_correlation_extractors(test_run_id, result)
        jmx_path = save_jmx_fragment(build_extractor_fragment(extractors), test_run_id)
    except OSError as e:
        msg = f"Error saving correlation extractors: {e}"
        await ctx.error(msg)
        return {
            "status": "ERROR",
            "message": msg,
            "test_run_id": test_run_id,
            "extractors_path": None,
            "jmx_path": None,
            "count": 0,
        }

    msg = f"Correlation complete: {len(extractors)} extractors for {len(candidates)} candidates"
    await ctx.info(f"{msg}: {extractors_path}")
    return {
        "status": "OK",
        "message": msg,
        "test_run_id": test_run_id,
        "extractors_path": extractors_path,
        "jmx_path": jmx_path,
        "count": len(extractors),
        "unresolved": unresolved,
    }
