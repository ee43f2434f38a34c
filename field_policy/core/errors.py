"""
Domain-specific exceptions for field policy enforcement.

Three families live here:

- Schema errors: raised while compiling permitted paths. These are
  configuration bugs and are never retried.
- Policy violations: expected per-request rejections. They carry the list of
  offending fields for the boundary layer to present.
- Programmer errors: misuse of the validation API or bad rule definitions.
"""

from typing import Any

from field_policy.domain.models import FieldMessage


class FieldPolicyError(Exception):
    """Base exception for all field policy errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


# =============================================================================
# Schema (compile-time) errors
# =============================================================================


class PolicySchemaError(FieldPolicyError):
    """Raised when a list of permitted paths cannot be compiled."""

    pass


class SchemaConflictError(PolicySchemaError):
    """
    Raised when two permitted paths disagree on the shape of a key.

    Examples:
    - `a.*.b` followed by `a.b` (array, then object)
    - `a.b` followed by `a.0` (object, then array)
    """

    pass


class UnsupportedSchemaError(PolicySchemaError):
    """
    Raised for path shapes the compiler does not support.

    Examples:
    - `a.*.*.b` (directly nested array selectors)
    """

    pass


class InvalidPathError(PolicySchemaError):
    """
    Raised when a path string is malformed.

    Examples:
    - empty path or empty segment (`a..b`)
    - path starting with an array selector (`*.a`)
    - path longer than the configured segment limit
    """

    pass


# =============================================================================
# Per-request violations
# =============================================================================


class PolicyViolationError(FieldPolicyError):
    """
    Base for rejections of a request by a policy.

    Carries one `FieldMessage` per offending field and a stable error code
    that the boundary layer may map to its own presentation.
    """

    code: str = "E_POLICY_VIOLATION"

    def __init__(
        self,
        messages: list[FieldMessage],
        message: str = "",
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.messages = list(messages)
        if code is not None:
            self.code = code
        super().__init__(message, details=details)

    @property
    def fields(self) -> list[str]:
        """Offending field paths, in report order."""
        return [m.field for m in self.messages]

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "messages": [m.model_dump(exclude_none=True) for m in self.messages],
        }


class PermittedFieldsViolation(PolicyViolationError):
    """Raised when request data contains fields outside the permitted set."""

    code = "E_PERMITTED_QUERY_FIELDS"

    def __init__(self, messages: list[FieldMessage], message: str = "Not authorized on query fields."):
        super().__init__(messages, message)


class PermittedFieldValuesViolation(PolicyViolationError):
    """Raised when permitted fields carry values rejected by their rules."""

    code = "E_PERMITTED_QUERY_FIELDS_VALUES"

    def __init__(
        self,
        messages: list[FieldMessage],
        message: str = "Not authorized on query fields values.",
    ):
        super().__init__(messages, message)


class UnauthorizedRequestError(PolicyViolationError):
    """Raised when a policy's authorize hook rejects the request."""

    code = "E_UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized request."):
        super().__init__([], message)


# =============================================================================
# Rule evaluation
# =============================================================================


class RuleEvaluationError(FieldPolicyError):
    """
    Raised by a rule evaluator when data fails its rules.

    This is the evaluator's normal failure signal; `Validation` captures it
    and exposes the errors as a result instead of propagating it.
    """

    def __init__(self, errors: Any, message: str = "Validation failed"):
        self.errors = errors
        super().__init__(message)


# =============================================================================
# Programmer errors
# =============================================================================


class ValidationMisuseError(FieldPolicyError):
    """Raised when a `Validation` instance is used out of order."""

    pass


class RuleDefinitionError(FieldPolicyError):
    """Raised when a rules mapping is malformed or names an unknown rule."""

    pass


class InvalidArgumentError(FieldPolicyError):
    """Raised when a public API receives an argument of the wrong kind."""

    @classmethod
    def invalid_parameter(cls, message: str, value: Any) -> "InvalidArgumentError":
        return cls(f"{message} instead received {type(value).__name__}", details={"value": repr(value)})
