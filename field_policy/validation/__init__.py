"""
Field value validation.

- rules: default rule evaluator and its call contract
- validation: one-shot Validation wrapper
- validator: PolicyValidator facade
"""

from field_policy.validation.rules import RuleEngine, RuleEvaluator
from field_policy.validation.validation import VALUE_VIOLATION_MESSAGE, Validation
from field_policy.validation.validator import PolicyValidator

__all__ = [
    "PolicyValidator",
    "RuleEngine",
    "RuleEvaluator",
    "VALUE_VIOLATION_MESSAGE",
    "Validation",
]
