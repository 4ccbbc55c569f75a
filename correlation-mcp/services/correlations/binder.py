"""
Result binding into the variable store.

Variable naming contract (read by other test elements):
    {ref}                 selected value (single mode) or default
    {ref}_g0..{ref}_gN    groups of the selected match, {ref}_g = N
    {ref}_matchNr         number of matches (series mode)
    {ref}_{i}             value of match i (series mode)
    {ref}_{i}_g0..N, {ref}_{i}_g

For one ref name only one shape (single or series) is left after a run.
"""

import logging
from typing import Dict, Optional, Sequence, Tuple

from .constants import GROUP_SUFFIX, REF_MATCH_NR, UNDERSCORE
from .model import Match, TemplateFragment, apply_template

logger = logging.getLogger(__name__)


def _pop_count(variables: Dict[str, str], key: str) -> int:
    """Read a stored count and clear it so it is never re-read after overwrite."""
    previous = variables.pop(key, None)
    if previous is None:
        return 0
    try:
        return int(previous)
    except ValueError:
        logger.warning("Could not parse number: '%s'", previous)
        return 0


def apply_default(variables: Dict[str, str], ref_name: str, default_value: str, default_empty_value: bool) -> bool:
    """
    Pre-seed {ref} with the default value.

    Only done when a default is provided or an empty default is explicitly
    requested. Returns True when the variable was seeded.
    """
    if default_value or default_empty_value:
        variables[ref_name] = default_value or ""
        return True
    return False


def save_groups(variables: Dict[str, str], basename: str, match: Match) -> None:
    """Set {basename}_g0..gK and {basename}_g = K, pruning groups left from a larger previous run."""
    prefix = basename + GROUP_SUFFIX
    previous = _pop_count(variables, prefix)
    groups = len(match.groups)
    for index in range(groups):
        variables[f"{prefix}{index}"] = match.group(index)
    variables[prefix] = str(groups - 1)
    for index in range(groups, previous + 1):
        variables.pop(f"{prefix}{index}", None)


def remove_groups(variables: Dict[str, str], basename: str) -> None:
    """Remove {basename}_g and {basename}_g0..gN. No-op when absent."""
    prefix = basename + GROUP_SUFFIX
    groups = _pop_count(variables, prefix)
    for index in range(groups + 1):
        variables.pop(f"{prefix}{index}", None)


def _bind_value(
    variables: Dict[str, str],
    name: str,
    match: Match,
    template: Tuple[TemplateFragment, ...],
    with_groups: bool,
) -> None:
    if with_groups:
        variables[name] = apply_template(template, match)
        save_groups(variables, name, match)
    else:
        variables[name] = match.group(0)


def _prune_series(variables: Dict[str, str], ref_name: str, keep: int, previous: int) -> None:
    for index in range(keep + 1, previous + 1):
        name = f"{ref_name}{UNDERSCORE}{index}"
        variables.pop(name, None)
        remove_groups(variables, name)


def bind_single(
    variables: Dict[str, str],
    ref_name: str,
    match: Optional[Match],
    template: Tuple[TemplateFragment, ...] = (1,),
    with_groups: bool = True,
) -> None:
    """
    Bind one selected match to {ref}.

    A missing match leaves {ref} as it is (the default, if one was seeded) and
    removes stale group variables. Series variables from a previous run are
    pruned in both cases.
    """
    previous_count = _pop_count(variables, ref_name + REF_MATCH_NR)
    if match is not None:
        _bind_value(variables, ref_name, match, template, with_groups)
    else:
        remove_groups(variables, ref_name)
    _prune_series(variables, ref_name, 0, previous_count)


def bind_series(
    variables: Dict[str, str],
    ref_name: str,
    matches: Sequence[Match],
    template: Tuple[TemplateFragment, ...] = (1,),
    with_groups: bool = True,
    keep_ref: bool = False,
) -> None:
    """
    Bind every match as {ref}_1..{ref}_n and set {ref}_matchNr = n.

    Single-mode variables are removed first; {ref} itself survives only when
    `keep_ref` is set (it holds this run's default value).
    """
    remove_groups(variables, ref_name)
    if not keep_ref:
        variables.pop(ref_name, None)
    previous_count = _pop_count(variables, ref_name + REF_MATCH_NR)
    for index, match in enumerate(matches, start=1):
        _bind_value(variables, f"{ref_name}{UNDERSCORE}{index}", match, template, with_groups)
    variables[ref_name + REF_MATCH_NR] = str(len(matches))
    _prune_series(variables, ref_name, len(matches), previous_count)
