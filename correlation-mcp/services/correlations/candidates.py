"""
Correlation candidate parameters.

Collects the name -> value map of everything a recorded session sent (body
parameters, URL query parameters, Bearer token) and compares two recordings of
the same flow: parameters whose values changed between the runs are dynamic
and need an extractor.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Tuple
from urllib.parse import parse_qsl, urlparse

from .constants import AUTHORIZATION_HEADER, BEARER_AUTH
from .utils import walk_json_all_values

logger = logging.getLogger(__name__)

AUTHORIZATION = "Authorization"


def add_parameter(parameters: Dict[str, str], name: str, value: str) -> None:
    """
    Add one observed parameter.

    A name seen again with a new value that no other parameter holds is kept
    under an alias, "name(1)", "name(2)", ...
    """
    if not name:
        return
    if name not in parameters:
        parameters[name] = value
        return
    if parameters[name] == value or value in parameters.values():
        return
    count = sum(1 for key in parameters if key.startswith(name + "("))
    parameters[f"{name}({count + 1})"] = value


def _body_parameters(post_data: str) -> List[Tuple[str, str]]:
    text = (post_data or "").strip()
    if not text:
        return []
    if text[0] in "{[":
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Request body is not JSON, reading it as form data")
        else:
            return [
                (key, str(value))
                for _, value, key in walk_json_all_values(data)
                if not key.startswith("[") and isinstance(value, (str, int, float)) and not isinstance(value, bool)
            ]
    return parse_qsl(text, keep_blank_values=True)


def _bearer_token(headers: Any) -> str:
    if not isinstance(headers, dict):
        return ""
    for name, value in headers.items():
        if str(name).lower() != AUTHORIZATION_HEADER:
            continue
        parts = str(value).strip().split(" ")
        if len(parts) >= 2 and parts[0] == BEARER_AUTH:
            return parts[1]
        return ""
    return ""


def build_parameter_map(entries: Iterable[Dict[str, Any]]) -> Dict[str, str]:
    """
    Build the name -> value map of a recorded session.

    Args:
        entries: Network capture entries in request order (url, headers, post_data).

    Returns:
        Dict of parameter name (or alias) to value, in first-seen order.
    """
    parameters: Dict[str, str] = {}
    tokens: List[str] = []
    for entry in entries:
        for name, value in _body_parameters(entry.get("post_data") or ""):
            add_parameter(parameters, name, value)
        query = urlparse(entry.get("url", "")).query
        for name, value in parse_qsl(query, keep_blank_values=True):
            add_parameter(parameters, name, value)
        token = _bearer_token(entry.get("headers"))
        if token:
            tokens.append(token)

    # Headers are read after every request, once per distinct token
    for token in tokens:
        add_parameter(parameters, AUTHORIZATION, token)
    return parameters


def extract_correlation_candidates(first: Dict[str, str], second: Dict[str, str]) -> List[Dict[str, str]]:
    """
    Compare two recordings of the same flow.

    Returns:
        One {"parameter", "first_value", "second_value"} dict per name present
        in both maps with two non-blank, different values.
    """
    candidates = []
    for name, value in first.items():
        other = second.get(name)
        if value and value.strip() and other and other.strip() and value != other:
            candidates.append({"parameter": name, "first_value": value, "second_value": other})
    logger.debug("%d correlation candidate(s) found", len(candidates))
    return candidates
