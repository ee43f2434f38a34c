"""
Field authorization service.

Checks untrusted request data against a set of permitted query paths and
shapes outbound content to permitted response paths.

Two request checks run in a fixed order:
1. Field presence: data projected onto the permitted paths must equal the
   original data. Every difference is an unauthorized field.
2. Field values: each permitted path's constraint rules must pass.

The value check never runs when the presence check fails.

A permitted query of None means the caller declared no restriction and both
checks are skipped. An empty list or mapping authorizes nothing.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from field_policy.compiler.deep_diff import deep_diff
from field_policy.compiler.projector import project
from field_policy.compiler.projector import project_response as shape_response
from field_policy.compiler.rule_parser import compile_path_rules
from field_policy.core.config import settings
from field_policy.core.errors import (
    InvalidArgumentError,
    PermittedFieldsViolation,
    PermittedFieldValuesViolation,
    PolicyViolationError,
)
from field_policy.core.observability import record_authorization, record_projection
from field_policy.core.telemetry import get_tracer
from field_policy.domain.enums import AuthorizationCheck
from field_policy.domain.models import FieldMessage
from field_policy.validation.validator import PolicyValidator

logger = logging.getLogger(__name__)

FIELD_VIOLATION_MESSAGE = "Not authorized on query field {field}."

# Permitted paths, alone or mapped to their value constraints.
PermittedQuery = Sequence[str] | Mapping[str, Any]


def normalize_permitted_query(permitted_query: PermittedQuery | None) -> dict[str, Any] | None:
    """
    Convert permitted query declarations into a path -> rules mapping.

    Paths declared without a constraint get `settings.default_value_rule`.

    Returns:
        None when no restriction is declared, otherwise the rules mapping

    Raises:
        InvalidArgumentError: If neither a mapping nor a sequence of paths is
                              given (bare strings and booleans included)
    """
    if permitted_query is None:
        return None

    if isinstance(permitted_query, str) or not isinstance(permitted_query, Iterable):
        raise InvalidArgumentError.invalid_parameter(
            "Permitted query must be a sequence of paths or a mapping of path to rules",
            permitted_query,
        )

    default_rule = settings.default_value_rule
    if isinstance(permitted_query, Mapping):
        return {
            path: default_rule if rules is None else rules for path, rules in permitted_query.items()
        }
    return {path: default_rule for path in permitted_query}


class FieldAuthorizationService:
    """Authorizes request fields and values, and shapes response content."""

    def __init__(self, validator: PolicyValidator | None = None):
        self.validator = validator if validator is not None else PolicyValidator()

    def authorize_fields(self, permitted_query: PermittedQuery | None, data: Any) -> None:
        """
        Reject data containing any field outside the permitted paths.

        Raises:
            PermittedFieldsViolation: One message per unauthorized field path
            PolicySchemaError: If the permitted paths do not compile
        """
        rules = normalize_permitted_query(permitted_query)
        if rules is None:
            return

        with get_tracer().start_as_current_span("field_policy.authorize_fields") as span:
            tree = compile_path_rules(list(rules))
            data = {} if data is None else data
            authorized = project(tree, data)
            unauthorized = deep_diff(authorized, data)

            if not unauthorized:
                record_authorization(AuthorizationCheck.FIELDS.value, "allowed")
                return

            messages = [
                FieldMessage(field=field, message=FIELD_VIOLATION_MESSAGE.format(field=field))
                for field in unauthorized
            ]
            span.set_attribute("field_policy.rejected_fields", len(messages))
            logger.info(
                "Rejected request with unauthorized fields: %s",
                list(unauthorized),
                extra={"check": AuthorizationCheck.FIELDS.value},
            )
            record_authorization(AuthorizationCheck.FIELDS.value, "rejected", len(messages))
            raise PermittedFieldsViolation(messages)

    async def authorize_field_values(
        self, permitted_query: PermittedQuery | None, data: Any
    ) -> None:
        """
        Reject data whose permitted fields fail their value constraints.

        Raises:
            PermittedFieldValuesViolation: One message per violated rule
            RuleDefinitionError: If a constraint is malformed
        """
        rules = normalize_permitted_query(permitted_query)
        if rules is None:
            return

        with get_tracer().start_as_current_span("field_policy.authorize_field_values") as span:
            data = {} if data is None else data
            validation = await self.validator.validate_all(data, rules)

            if not validation.fails():
                record_authorization(AuthorizationCheck.VALUES.value, "allowed")
                return

            messages = validation.messages()
            span.set_attribute("field_policy.rejected_fields", len(messages))
            logger.info(
                "Rejected request with unauthorized field values: %s",
                [m.field for m in messages],
                extra={"check": AuthorizationCheck.VALUES.value},
            )
            record_authorization(AuthorizationCheck.VALUES.value, "rejected", len(messages))
            raise PermittedFieldValuesViolation(messages)

    async def authorize_query(self, permitted_query: PermittedQuery | None, data: Any) -> None:
        """Run the field presence check, then the field value check."""
        try:
            self.authorize_fields(permitted_query, data)
            await self.authorize_field_values(permitted_query, data)
        except PolicyViolationError:
            record_authorization(AuthorizationCheck.REQUEST.value, "rejected")
            raise
        record_authorization(AuthorizationCheck.REQUEST.value, "allowed")

    def project_response(self, permitted_fields: Sequence[str] | None, content: Any) -> Any:
        """
        Keep only the permitted fields of outbound content.

        None permitted fields leave the content untouched. Unpermitted fields
        are dropped silently; this never raises for data shape problems.
        """
        if permitted_fields is None:
            return content

        record_projection("response")
        return shape_response(permitted_fields, content)
