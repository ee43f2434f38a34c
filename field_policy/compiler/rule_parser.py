"""
Permitted-path compiler.

Turns a flat list of dot-notation paths into a `RuleTree` that drives the
projector. The output is optimized for walking data, not for reading.

Example:
    compile_path_rules(["users.*.username"]).root.model_dump(mode="json")

    # output
    {
        "kind": "object",
        "children": {
            "users": {
                "kind": "array",
                "children": {
                    "*": {
                        "kind": "object",
                        "children": {"username": {"kind": "literal", "children": {}}},
                    }
                },
            }
        },
    }

Shape rules:
- A key is only ever one of object/array across all paths. Reshaping raises
  SchemaConflictError.
- A literal is upgraded to object/array when a longer path shares its
  prefix; a shorter path never downgrades an existing node. The result does
  not depend on the order of the paths.
- Array selectors may not directly follow each other (`a.*.*.b`).
- Wildcard element rules are merged into every specific-index element rule
  of the same array, so `a.*.x` plus `a.0.y` permits both on element 0.
"""

import logging
import re
import time
from collections.abc import Iterable, Sequence
from functools import lru_cache

from field_policy.core.config import settings
from field_policy.core.errors import (
    InvalidArgumentError,
    InvalidPathError,
    PolicySchemaError,
    SchemaConflictError,
    UnsupportedSchemaError,
)
from field_policy.core.observability import record_compilation
from field_policy.domain.enums import NodeKind
from field_policy.domain.models import WILDCARD, RuleNode, RuleTree

logger = logging.getLogger(__name__)

INDEX_PATTERN = re.compile(r"^\d+$")
PATH_SEPARATOR = "."


class _Node:
    """Mutable node used while a tree is being built."""

    __slots__ = ("kind", "children")

    def __init__(self, kind: NodeKind):
        self.kind = kind
        self.children: dict[str, _Node] = {}


def is_array_selector(token: str) -> bool:
    """True for `*` and for pure-digit index segments."""
    return token == WILDCARD or bool(INDEX_PATTERN.match(token))


def compile_path_rules(paths: Sequence[str]) -> RuleTree:
    """
    Compile permitted paths into a rule tree.

    Args:
        paths: Ordered dot-notation paths, e.g. ["foo", "baz.*.qux"]

    Returns:
        Frozen RuleTree rooted at an object node

    Raises:
        InvalidArgumentError: If `paths` is a bare string or not iterable
        InvalidPathError: If a path is empty or malformed
        SchemaConflictError: If two paths disagree on a key's shape
        UnsupportedSchemaError: If a path nests array selectors
    """
    if isinstance(paths, str) or not isinstance(paths, Iterable):
        raise InvalidArgumentError.invalid_parameter(
            "compile_path_rules expects a sequence of path strings", paths
        )
    return _compile_cached(tuple(paths))


def clear_compile_cache() -> None:
    """Drop all memoized trees."""
    _compile_cached.cache_clear()


def _compile(paths: tuple[str, ...]) -> RuleTree:
    start_time = time.perf_counter()

    try:
        root: dict[str, _Node] = {}
        for path in paths:
            _apply_path(root, tokenize_path(path), path)
        _merge_wildcard_rules(root, prefix="")
        tree = RuleTree(root=RuleNode(kind=NodeKind.OBJECT, children=_freeze(root)), paths=paths)
    except PolicySchemaError:
        record_compilation("error", time.perf_counter() - start_time)
        raise

    duration = time.perf_counter() - start_time
    record_compilation("success", duration)
    logger.debug(
        "Compiled %d permitted paths into %d top-level rules in %.6fs",
        len(paths),
        len(root),
        duration,
    )
    return tree


_compile_cached = lru_cache(maxsize=settings.compiler_cache_size)(_compile)


def tokenize_path(path: str) -> list[str]:
    """
    Split a permitted path into segments and validate its shape.

    Raises:
        InvalidPathError: For empty paths, empty segments, overly long paths
                          or paths starting with an array selector
        UnsupportedSchemaError: For directly nested array selectors
    """
    if not isinstance(path, str) or not path:
        raise InvalidPathError("Permitted path must be a non-empty string", details={"path": path})

    tokens = path.split(PATH_SEPARATOR)

    if any(token == "" for token in tokens):
        raise InvalidPathError(f"Empty segment in permitted path '{path}'", details={"path": path})

    if len(tokens) > settings.compiler_max_path_segments:
        raise InvalidPathError(
            f"Permitted path '{path}' exceeds {settings.compiler_max_path_segments} segments",
            details={"path": path, "segments": len(tokens)},
        )

    if is_array_selector(tokens[0]):
        raise InvalidPathError(
            f"Permitted path '{path}' cannot start with an array selector",
            details={"path": path},
        )

    for current, following in zip(tokens, tokens[1:]):
        if is_array_selector(current) and is_array_selector(following):
            raise UnsupportedSchemaError("2D arrays are not supported", details={"path": path})

    return tokens


def _apply_path(root: dict[str, _Node], tokens: list[str], path: str) -> None:
    cursor = root
    last = len(tokens) - 1
    index = 0

    while True:
        token = tokens[index]
        prefix = PATH_SEPARATOR.join(tokens[: index + 1])

        if index == last:
            _set_literal(cursor, token)
            return

        selector = tokens[index + 1]
        if not is_array_selector(selector):
            cursor = _set_object(cursor, token, prefix, path).children
            index += 1
            continue

        array_node = _set_array(cursor, token, prefix, path)

        # Selector terminates the path: every matching element is kept whole.
        if index + 1 == last:
            _set_literal(array_node.children, selector)
            return

        element_prefix = f"{prefix}{PATH_SEPARATOR}{selector}"
        cursor = _set_object(array_node.children, selector, element_prefix, path).children
        index += 2


def _set_literal(source: dict[str, _Node], key: str) -> _Node:
    """
    Ensure a node exists under `key`. Existing nodes keep their kind, so a
    literal never narrows an object or array defined by a longer path.
    """
    item = source.get(key)
    if item is None:
        item = _Node(NodeKind.LITERAL)
        source[key] = item
    return item


def _set_object(source: dict[str, _Node], key: str, prefix: str, path: str) -> _Node:
    """Create an object node or upgrade a literal one. Arrays cannot be reshaped."""
    item = source.get(key)
    if item is not None and item.kind == NodeKind.ARRAY:
        raise SchemaConflictError(
            f"Cannot reshape '{prefix}' array to an object",
            details={"key": prefix, "path": path},
        )
    if item is None:
        item = _Node(NodeKind.OBJECT)
        source[key] = item
    item.kind = NodeKind.OBJECT
    return item


def _set_array(source: dict[str, _Node], key: str, prefix: str, path: str) -> _Node:
    """Create an array node or upgrade a literal one. Objects cannot be reshaped."""
    item = source.get(key)
    if item is not None and item.kind == NodeKind.OBJECT:
        raise SchemaConflictError(
            f"Cannot reshape '{prefix}' object to an array",
            details={"key": prefix, "path": path},
        )
    if item is None:
        item = _Node(NodeKind.ARRAY)
        source[key] = item
    item.kind = NodeKind.ARRAY
    return item


def _merge_wildcard_rules(children: dict[str, _Node], prefix: str) -> None:
    for key, node in list(children.items()):
        node_prefix = f"{prefix}{PATH_SEPARATOR}{key}" if prefix else key

        if node.kind == NodeKind.ARRAY and WILDCARD in node.children:
            wildcard = node.children[WILDCARD]
            for selector in [s for s in node.children if s != WILDCARD]:
                _merge_node(
                    node.children, selector, wildcard, f"{node_prefix}{PATH_SEPARATOR}{selector}"
                )

        _merge_wildcard_rules(node.children, node_prefix)


def _merge_node(target: dict[str, _Node], key: str, source: _Node, prefix: str) -> None:
    """Apply the shape of `source` under `target[key]` with the usual upgrade rules."""
    if source.kind == NodeKind.LITERAL:
        _set_literal(target, key)
        return

    if source.kind == NodeKind.OBJECT:
        merged = _set_object(target, key, prefix, prefix)
    else:
        merged = _set_array(target, key, prefix, prefix)

    for child_key, child in source.children.items():
        _merge_node(merged.children, child_key, child, f"{prefix}{PATH_SEPARATOR}{child_key}")


def _freeze(children: dict[str, _Node]) -> dict[str, RuleNode]:
    return {
        key: RuleNode(kind=node.kind, children=_freeze(node.children))
        for key, node in children.items()
    }
