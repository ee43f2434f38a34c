"""
Tree-driven object projection.

Filters a nested value down to the paths permitted by a compiled RuleTree.
Projection never raises for data problems and never mutates its input: a
value whose shape does not match its rule is omitted (fail closed).

Per rule kind:
- literal: the value is copied verbatim, whatever its shape
- object: a mapping is rebuilt with only the keys that have a child rule
- array: a sequence is rebuilt element by element using the element rule
  for that index (specific index first, then `*`). The result stops at the
  first element without a rule; an element of the wrong shape becomes an
  empty record so later elements keep their index.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from field_policy.compiler.rule_parser import compile_path_rules
from field_policy.compiler.values import classify_value, to_plain_data
from field_policy.domain.enums import NodeKind, ValueKind
from field_policy.domain.models import RuleNode, RuleTree

logger = logging.getLogger(__name__)

# Conventional key of collection-serializer envelopes ({"data": [...], ...meta})
ENVELOPE_DATA_KEY = "data"

_OMIT = object()


def project(tree: RuleTree, value: Any) -> dict:
    """
    Project a mapping down to the permitted paths of `tree`.

    Args:
        tree: Compiled permitted paths
        value: Untrusted nested value

    Returns:
        A new dict; `{}` when `value` is not a mapping
    """
    if classify_value(value) != ValueKind.MAPPING:
        return {}
    return _project_mapping(tree.children, value)


def project_many(tree: RuleTree, values: Iterable[Any]) -> list[dict]:
    """Project every element of a collection independently."""
    return [project(tree, value) for value in values]


def project_response(paths: Sequence[str], content: Any) -> Any:
    """
    Shape outbound content to the permitted response paths.

    Serializer objects (and serializer items of a collection) are converted
    to plain data first. Collection
    envelopes keep every sibling key (pagination metadata) and only have
    their `data` items projected. Omitted fields are dropped silently.

    Args:
        paths: Permitted response paths
        content: Response content (mapping, list, serializer object or None)

    Returns:
        Shaped content, or None when `content` is None
    """
    if content is None:
        return None

    tree = compile_path_rules(paths)
    content = to_plain_data(content)
    kind = classify_value(content)

    if kind == ValueKind.MAPPING and _is_envelope(content):
        return {
            key: _project_items(tree, item) if key == ENVELOPE_DATA_KEY else item
            for key, item in content.items()
        }

    if kind == ValueKind.SEQUENCE:
        return _project_items(tree, content)

    return project(tree, content)


def _project_items(tree: RuleTree, items: Iterable[Any]) -> list[dict]:
    return project_many(tree, (to_plain_data(item) for item in items))


def _is_envelope(content: Mapping) -> bool:
    return (
        ENVELOPE_DATA_KEY in content
        and classify_value(content[ENVELOPE_DATA_KEY]) == ValueKind.SEQUENCE
    )


def _project_mapping(rules: Mapping[str, RuleNode], source: Mapping) -> dict:
    result = {}
    for key, item in source.items():
        rule = rules.get(key) if isinstance(key, str) else None
        if rule is None:
            continue
        projected = _project_value(rule, item)
        if projected is not _OMIT:
            result[key] = projected
    return result


def _project_value(rule: RuleNode, value: Any) -> Any:
    if rule.is_literal:
        return value

    kind = classify_value(value)

    if rule.kind == NodeKind.OBJECT:
        if kind != ValueKind.MAPPING:
            return _OMIT
        return _project_mapping(rule.children, value)

    if kind != ValueKind.SEQUENCE:
        return _OMIT
    return _project_sequence(rule, value)


def _project_sequence(rule: RuleNode, source: Sequence) -> list:
    # An array rule without element rules keeps every element.
    if not rule.children:
        return list(source)

    result = []
    for index, item in enumerate(source):
        element_rule = rule.element_rule(index)
        # Dropping an element would shift every later index onto another rule.
        if element_rule is None:
            break
        projected = _project_value(element_rule, item)
        # A mismatched element becomes an empty placeholder holding no input fields.
        if projected is _OMIT:
            projected = [] if element_rule.kind == NodeKind.ARRAY else {}
        result.append(projected)
    return result
