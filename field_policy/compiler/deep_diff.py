"""
Structural diff of nested mappings and sequences.

Produces a flat edit script keyed by dotted path:

    {"from": value}            present on the `from` side only
    {"to": value}              present on the `to` side only
    {"from": old, "to": new}   changed leaf

Differing mappings/sequences are walked rather than reported whole, so only
the divergent leaves appear. Sequences are keyed by index.
"""

from collections.abc import Mapping
from typing import Any

from field_policy.compiler.values import classify_value, is_object_like
from field_policy.core.config import settings
from field_policy.domain.enums import ValueKind

# Path reported when two non-container roots differ.
ROOT_PATH = "$"


def deep_diff(from_value: Any, to_value: Any, max_depth: int | None = None) -> dict[str, dict]:
    """
    Compute the changes needed to turn `from_value` into `to_value`.

    Entry order: keys of `from` (removals) first, then keys of `to`, each in
    their native order, depth first.

    Args:
        from_value: Reference value (e.g. the projected data)
        to_value: Compared value (e.g. the original request data)
        max_depth: Nesting depth below which a differing subtree is reported
                   as a single change. Defaults to settings.diff_max_depth.

    Returns:
        Mapping of dotted path to change entry; empty when equal

    Example:
        >>> deep_diff({"foo": "bar"}, {"foo": "bar", "qux": "quux"})
        {'qux': {'to': 'quux'}}
    """
    if max_depth is None:
        max_depth = settings.diff_max_depth

    changes: dict[str, dict] = {}

    if _is_equal(from_value, to_value):
        return changes

    if not (is_object_like(from_value) and is_object_like(to_value)):
        changes[ROOT_PATH] = {"from": from_value, "to": to_value}
        return changes

    _walk(from_value, to_value, None, 1, max_depth, changes)
    return changes


def _walk(
    from_value: Any,
    to_value: Any,
    path: str | None,
    depth: int,
    max_depth: int,
    changes: dict[str, dict],
) -> None:
    from_entries = _entries(from_value)
    to_entries = _entries(to_value)

    for key, value in from_entries.items():
        if key not in to_entries:
            changes[_build_path(path, key)] = {"from": value}

    for key, to in to_entries.items():
        current_path = _build_path(path, key)
        if key not in from_entries:
            changes[current_path] = {"to": to}
            continue

        from_ = from_entries[key]
        if _is_equal(from_, to):
            continue

        if is_object_like(from_) and is_object_like(to) and depth < max_depth:
            _walk(from_, to, current_path, depth + 1, max_depth, changes)
        else:
            changes[current_path] = {"from": from_, "to": to}


def _entries(value: Any) -> dict[str, Any]:
    """Key/value view of a container with string keys (indexes for sequences)."""
    if classify_value(value) == ValueKind.MAPPING:
        return {str(key): item for key, item in value.items()}
    return {str(index): item for index, item in enumerate(value)}


def _build_path(path: str | None, key: str) -> str:
    return key if path is None else f"{path}.{key}"


def _is_equal(left: Any, right: Any) -> bool:
    # Identity first: a value copied verbatim (even NaN) is unchanged.
    if left is right:
        return True
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        return left.keys() == right.keys() and all(_is_equal(left[k], right[k]) for k in left)
    if is_object_like(left) and is_object_like(right):
        if isinstance(left, Mapping) or isinstance(right, Mapping):
            return False
        return len(left) == len(right) and all(_is_equal(a, b) for a, b in zip(left, right))
    try:
        return bool(left == right)
    except (TypeError, ValueError):
        # Ambiguous comparisons (array-like scalars) count as a change.
        return False
