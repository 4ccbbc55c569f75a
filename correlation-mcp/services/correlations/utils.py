"""
Shared utilities for correlation extraction and synthesis.

Contains URL encoding helpers, value matching, parameter alias handling,
JSON walking, and domain exclusion.
"""

from typing import Any, Iterable, List, Optional, Tuple
from urllib.parse import quote_plus, unquote_plus, urlparse

from .constants import PARAMETER_ALIAS_RE

# Maximum depth for JSON traversal
MAX_JSON_DEPTH = 5


# === Domain Exclusion ===

def is_excluded_url(url: str, exclude_domains: Iterable[str]) -> bool:
    """Check if URL should be excluded based on domain exclusion list."""
    exclude_domains = list(exclude_domains or [])
    if not url or not exclude_domains:
        return False

    hostname = urlparse(url).netloc.lower()
    for domain in exclude_domains:
        domain_lower = domain.lower()
        # Match exact domain or subdomain
        if hostname == domain_lower or hostname.endswith("." + domain_lower):
            return True
    return False


# === Parameter names ===

def argument_name(parameter: str) -> str:
    """
    Real argument name of a parameter alias.

    Repeated parameter names with different values are recorded as
    "name(1)", "name(2)", ...; the response only ever holds "name".
    """
    if not parameter:
        return ""
    match = PARAMETER_ALIAS_RE.match(parameter)
    return match.group(1) if match else parameter


# === URL Normalization ===

def value_forms(value: str) -> List[str]:
    """Decoded form first, then the raw form, then the URL-encoded form (deduplicated)."""
    forms: List[str] = []
    for form in (unquote_plus(value), value, quote_plus(value)):
        if form and form not in forms:
            forms.append(form)
    return forms


def find_value_form(value: str, text: str) -> Optional[str]:
    """Return the first form of `value` present in `text`, or None."""
    if not value or not text:
        return None
    for form in value_forms(value):
        if form in text:
            return form
    return None


# === JSON Walking ===

def walk_json_all_values(obj: Any, path: str = "$", depth: int = 0) -> List[Tuple[str, Any, str]]:
    """
    Walk JSON and extract ALL primitive values as (json_path, value, key_name).

    Respects MAX_JSON_DEPTH to avoid overly deep traversal.
    """
    results = []

    if depth > MAX_JSON_DEPTH:
        return results

    if isinstance(obj, dict):
        for key, value in obj.items():
            new_path = f"{path}.{key}"
            # Add all primitive values
            if isinstance(value, (str, int, float, bool)) or value is None:
                results.append((new_path, value, key))
            # Recurse into nested objects
            if isinstance(value, (dict, list)):
                results.extend(walk_json_all_values(value, new_path, depth + 1))

    elif isinstance(obj, list):
        for i, item in enumerate(obj):
            new_path = f"{path}[{i}]"
            if isinstance(item, (str, int, float, bool)) or item is None:
                results.append((new_path, item, f"[{i}]"))
            if isinstance(item, (dict, list)):
                results.extend(walk_json_all_values(item, new_path, depth + 1))

    return results
