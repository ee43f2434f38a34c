"""
Validator facade used by the authorization service.

Each call builds a fresh `Validation`, runs it against the configured
evaluator and returns the executed instance.

Example:
    validator = PolicyValidator()
    validation = await validator.validate_all({"status": "x"}, {"status": "in:draft"})
    if validation.fails():
        print(validation.messages())
"""

from collections.abc import Mapping
from typing import Any

from field_policy.core.errors import InvalidArgumentError
from field_policy.validation.rules import Formatter, RuleEngine, RuleEvaluator, RuleFunc
from field_policy.validation.validation import Validation


class PolicyValidator:
    """Runs one-shot validations against a rule evaluator."""

    def __init__(self, evaluator: RuleEvaluator | None = None):
        self.evaluator = evaluator if evaluator is not None else RuleEngine()

    async def validate(
        self,
        data: Any,
        rules: Mapping[str, Any],
        messages: Mapping[str, Any] | None = None,
        formatter: Formatter | None = None,
    ) -> Validation:
        return await Validation(data, rules, messages, formatter).run(self.evaluator)

    async def validate_all(
        self,
        data: Any,
        rules: Mapping[str, Any],
        messages: Mapping[str, Any] | None = None,
        formatter: Formatter | None = None,
    ) -> Validation:
        return await Validation(data, rules, messages, formatter).run_all(self.evaluator)

    def extend(self, rule: str, fn: RuleFunc) -> None:
        """
        Register a custom rule on the evaluator.

        Raises:
            InvalidArgumentError: If `fn` is not callable, or the evaluator
                                  does not accept custom rules
        """
        if not callable(fn):
            raise InvalidArgumentError.invalid_parameter(
                "PolicyValidator.extend expects 2nd parameter to be a function", fn
            )
        if not isinstance(self.evaluator, RuleEngine):
            raise InvalidArgumentError.invalid_parameter(
                "PolicyValidator.extend requires a RuleEngine evaluator", self.evaluator
            )
        self.evaluator.validations[rule] = fn
