"""
Domain enums for rule trees, value classification and validation state.
"""

from enum import Enum


class NodeKind(str, Enum):
    """Kind of a compiled rule tree node."""

    LITERAL = "literal"
    OBJECT = "object"
    ARRAY = "array"


class ValueKind(str, Enum):
    """
    Runtime shape of a value being projected or diffed.

    Every recursion level classifies its value exactly once and dispatches on
    the result.
    """

    MAPPING = "mapping"
    SEQUENCE = "sequence"
    SCALAR = "scalar"
    NULL = "null"


class ValidationState(str, Enum):
    """Lifecycle of a one-shot validation run."""

    PENDING = "PENDING"
    EXECUTED = "EXECUTED"


class AuthorizationCheck(str, Enum):
    """Checks performed by the authorization service (metrics label values)."""

    FIELDS = "fields"
    VALUES = "values"
    REQUEST = "request"
