"""
One-shot validation of data against a rules mapping.

A `Validation` wraps exactly one call to a rule evaluator. Failing rules are
an expected outcome and are exposed through `fails()` and `messages()`;
running the same instance twice is a programmer error.
"""

from collections.abc import Mapping
from typing import Any

from field_policy.core.errors import RuleEvaluationError, ValidationMisuseError
from field_policy.domain.enums import ValidationState
from field_policy.domain.models import FieldMessage
from field_policy.validation.rules import Formatter, RuleEvaluator

VALUE_VIOLATION_MESSAGE = "Policy validation failed on query field {field}"


class Validation:
    """
    Validate data with a rules schema, once.

    State machine: PENDING -> EXECUTED. `run`/`run_all` move to EXECUTED;
    calling either again raises ValidationMisuseError.
    """

    def __init__(
        self,
        data: Any,
        rules: Mapping[str, Any],
        messages: Mapping[str, Any] | None = None,
        formatter: Formatter | None = None,
    ):
        self._data = data
        self._rules = rules
        self._messages = messages
        self._formatter = formatter
        self._errors: Any = None
        self._state = ValidationState.PENDING

    @property
    def state(self) -> ValidationState:
        return self._state

    def _mark_as_executed(self) -> None:
        if self._state == ValidationState.EXECUTED:
            raise ValidationMisuseError("Cannot re-run validations on same data and rules")
        self._state = ValidationState.EXECUTED

    async def run(self, evaluator: RuleEvaluator) -> "Validation":
        """Run validation, stopping at the first failing rule."""
        self._mark_as_executed()
        try:
            await evaluator.validate(self._data, self._rules, self._messages, self._formatter)
        except RuleEvaluationError as error:
            self._errors = error.errors
        return self

    async def run_all(self, evaluator: RuleEvaluator) -> "Validation":
        """Run every rule regardless of earlier failures."""
        self._mark_as_executed()
        try:
            await evaluator.validate_all(self._data, self._rules, self._messages, self._formatter)
        except RuleEvaluationError as error:
            self._errors = error.errors
        return self

    def fails(self) -> bool:
        return self._errors is not None

    def messages(self) -> list[FieldMessage] | Any:
        """
        Return the validation errors.

        When custom messages were supplied, or a formatter turned the errors
        into something other than a list, the evaluator's errors are returned
        as is. Otherwise each error is normalized to a FieldMessage with a
        fixed message naming the field.

        Raises:
            ValidationMisuseError: If the validation has not been run yet
        """
        if self._state == ValidationState.PENDING:
            raise ValidationMisuseError("Cannot read messages before running the validation")

        if self._errors is None:
            return []

        if self._messages or not isinstance(self._errors, (list, tuple)):
            return self._errors

        return [
            FieldMessage(
                field=_error_value(error, "field"),
                message=VALUE_VIOLATION_MESSAGE.format(field=_error_value(error, "field")),
                validation=_error_value(error, "validation"),
            )
            for error in self._errors
        ]


def _error_value(error: Any, key: str) -> Any:
    if isinstance(error, Mapping):
        return error.get(key)
    return getattr(error, key, None)
