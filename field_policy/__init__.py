"""
Field policy: path-based authorization and shaping of structured data.

Permitted field paths (`"users.*.username"`) are compiled into a rule tree
that filters nested request/response data. Request data carrying fields
outside the permitted set is rejected; response data is pruned silently.
"""

from field_policy.compiler import (
    compile_path_rules,
    deep_diff,
    project,
    project_many,
    project_response,
)
from field_policy.core.errors import (
    FieldPolicyError,
    InvalidPathError,
    PermittedFieldsViolation,
    PermittedFieldValuesViolation,
    PolicySchemaError,
    PolicyViolationError,
    SchemaConflictError,
    UnauthorizedRequestError,
    UnsupportedSchemaError,
    ValidationMisuseError,
)
from field_policy.core.observability import configure_structured_logging, setup_logging
from field_policy.domain.models import FieldMessage, RuleNode, RuleTree
from field_policy.policy import Policy, PolicyEnforcer
from field_policy.services import FieldAuthorizationService
from field_policy.validation import PolicyValidator, RuleEngine, Validation

__all__ = [
    "compile_path_rules",
    "configure_structured_logging",
    "deep_diff",
    "project",
    "project_many",
    "project_response",
    "setup_logging",
    "FieldAuthorizationService",
    "FieldMessage",
    "FieldPolicyError",
    "InvalidPathError",
    "PermittedFieldsViolation",
    "PermittedFieldValuesViolation",
    "Policy",
    "PolicyEnforcer",
    "PolicySchemaError",
    "PolicyValidator",
    "PolicyViolationError",
    "RuleEngine",
    "RuleNode",
    "RuleTree",
    "SchemaConflictError",
    "UnauthorizedRequestError",
    "UnsupportedSchemaError",
    "Validation",
    "ValidationMisuseError",
]
