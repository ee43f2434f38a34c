"""
Default rule evaluator for permitted field values.

Rules are declared per field path, as a pipe separated string or a list:

    {
        "status": "required|in:draft,published",
        "tags.*": "string|max:32",
        "page": ["integer", "above:0"],
    }

Wildcard paths expand to one concrete field per array element
(`tags.0`, `tags.1`, ...), and errors name the concrete field. Every rule
except `required` skips fields that are missing from the data.

The evaluator follows the call contract used by `Validation`: it returns
normally when the data passes and raises `RuleEvaluationError` with the list
of errors otherwise.
"""

import inspect
import logging
import re
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from field_policy.compiler.values import classify_value
from field_policy.core.errors import RuleDefinitionError, RuleEvaluationError
from field_policy.domain.enums import ValueKind
from field_policy.domain.models import WILDCARD

logger = logging.getLogger(__name__)

# Placeholder for a field absent from the data (distinct from None).
MISSING = object()

RULE_SEPARATOR = "|"
ARGS_SEPARATOR = ","
DEFAULT_MESSAGE = "{validation} validation failed on {field}"

RuleFunc = Callable[[Any, list[str]], Any]
Formatter = Callable[[list[dict[str, Any]]], Any]


class RuleEvaluator(Protocol):
    """Call contract of a field value rule evaluator."""

    async def validate(
        self,
        data: Any,
        rules: Mapping[str, Any],
        messages: Mapping[str, Any] | None = None,
        formatter: Formatter | None = None,
    ) -> None: ...

    async def validate_all(
        self,
        data: Any,
        rules: Mapping[str, Any],
        messages: Mapping[str, Any] | None = None,
        formatter: Formatter | None = None,
    ) -> None: ...


# =============================================================================
# Built-in rules
# =============================================================================


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _numeric_arg(name: str, args: list[str]) -> float:
    if len(args) != 1:
        raise RuleDefinitionError(f"Rule '{name}' expects exactly one argument", details={"args": args})
    number = _to_number(args[0])
    if number is None:
        raise RuleDefinitionError(f"Rule '{name}' expects a numeric argument", details={"args": args})
    return number


def _length(value: Any) -> int | None:
    if isinstance(value, str) or classify_value(value) in (ValueKind.SEQUENCE, ValueKind.MAPPING):
        return len(value)
    return None


def _accept(value: Any, args: list[str]) -> bool:
    return True


def _required(value: Any, args: list[str]) -> bool:
    if value is MISSING or value is None:
        return False
    if isinstance(value, str):
        return value != ""
    if classify_value(value) in (ValueKind.SEQUENCE, ValueKind.MAPPING):
        return len(value) > 0
    return True


def _string(value: Any, args: list[str]) -> bool:
    return isinstance(value, str)


def _number(value: Any, args: list[str]) -> bool:
    return _to_number(value) is not None


def _integer(value: Any, args: list[str]) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return value.is_integer()
    return isinstance(value, str) and bool(re.fullmatch(r"-?\d+", value.strip()))


def _boolean(value: Any, args: list[str]) -> bool:
    if isinstance(value, bool):
        return True
    if isinstance(value, int):
        return value in (0, 1)
    return isinstance(value, str) and value.lower() in ("true", "false", "0", "1")


def _object(value: Any, args: list[str]) -> bool:
    return classify_value(value) == ValueKind.MAPPING


def _array(value: Any, args: list[str]) -> bool:
    return classify_value(value) == ValueKind.SEQUENCE


def _in(value: Any, args: list[str]) -> bool:
    if classify_value(value) == ValueKind.SEQUENCE:
        return all(_as_text(item) in args for item in value)
    if classify_value(value) == ValueKind.MAPPING:
        return False
    return _as_text(value) in args


def _not_in(value: Any, args: list[str]) -> bool:
    if classify_value(value) == ValueKind.SEQUENCE:
        return not any(_as_text(item) in args for item in value)
    return _as_text(value) not in args


def _min(value: Any, args: list[str]) -> bool:
    length = _length(value)
    return length is not None and length >= _numeric_arg("min", args)


def _max(value: Any, args: list[str]) -> bool:
    length = _length(value)
    return length is not None and length <= _numeric_arg("max", args)


def _above(value: Any, args: list[str]) -> bool:
    number = _to_number(value)
    return number is not None and number > _numeric_arg("above", args)


def _under(value: Any, args: list[str]) -> bool:
    number = _to_number(value)
    return number is not None and number < _numeric_arg("under", args)


def _regex(value: Any, args: list[str]) -> bool:
    if not args or not args[0]:
        raise RuleDefinitionError("Rule 'regex' expects a pattern argument")
    try:
        pattern = re.compile(args[0])
    except re.error as e:
        raise RuleDefinitionError(f"Rule 'regex' has an invalid pattern: {e}", details={"args": args}) from e
    return isinstance(value, str) and pattern.search(value) is not None


def _equals(value: Any, args: list[str]) -> bool:
    return _as_text(value) == ARGS_SEPARATOR.join(args)


BUILTIN_RULES: dict[str, RuleFunc] = {
    WILDCARD: _accept,
    "required": _required,
    "string": _string,
    "number": _number,
    "integer": _integer,
    "boolean": _boolean,
    "object": _object,
    "array": _array,
    "in": _in,
    "not_in": _not_in,
    "min": _min,
    "max": _max,
    "above": _above,
    "under": _under,
    "regex": _regex,
    "equals": _equals,
}

# Rules evaluated even when the field is absent.
PRESENCE_RULES = frozenset({"required"})

# Rules whose argument is taken whole (may contain commas).
RAW_ARG_RULES = frozenset({"regex", "equals"})


# =============================================================================
# Rule parsing and field resolution
# =============================================================================


def parse_rules(definition: Any) -> list[tuple[str, list[str]]]:
    """
    Parse a rule definition into (name, args) pairs.

    Raises:
        RuleDefinitionError: If the definition is neither a string nor a list
                             of strings
    """
    if isinstance(definition, str):
        tokens = definition.split(RULE_SEPARATOR)
    elif isinstance(definition, (list, tuple)) and all(isinstance(t, str) for t in definition):
        tokens = list(definition)
    else:
        raise RuleDefinitionError(
            "Rules must be defined as a string or an array",
            details={"definition": repr(definition)},
        )

    parsed = []
    for token in tokens:
        token = token.strip()
        if not token:
            continue
        name, _, raw_args = token.partition(":")
        if name in RAW_ARG_RULES:
            args = [raw_args] if raw_args else []
        else:
            args = [a.strip() for a in raw_args.split(ARGS_SEPARATOR)] if raw_args else []
        parsed.append((name.strip(), args))
    return parsed


def resolve_field(data: Any, pattern: str) -> list[tuple[str, Any]]:
    """
    Resolve a field pattern against data.

    Returns:
        (concrete dotted path, value or MISSING) pairs. A `*` segment expands
        over every element of a sequence and yields nothing for anything else.
    """
    results: list[tuple[str, Any]] = [("", data)]

    for segment in pattern.split("."):
        expanded = []
        for prefix, value in results:
            if segment == WILDCARD:
                if classify_value(value) == ValueKind.SEQUENCE:
                    expanded.extend(
                        (_join(prefix, str(index)), item) for index, item in enumerate(value)
                    )
                continue
            expanded.append((_join(prefix, segment), _child(value, segment)))
        results = expanded

    return results


def _join(prefix: str, segment: str) -> str:
    return f"{prefix}.{segment}" if prefix else segment


def _child(value: Any, segment: str) -> Any:
    kind = classify_value(value)
    if kind == ValueKind.MAPPING:
        return value.get(segment, MISSING)
    if kind == ValueKind.SEQUENCE and segment.isdigit():
        index = int(segment)
        return value[index] if index < len(value) else MISSING
    return MISSING


# =============================================================================
# Evaluator
# =============================================================================


class RuleEngine:
    """
    Evaluates per-field rule definitions against nested data.

    Custom rules can be registered in `validations`; a rule function receives
    `(value, args)` and returns (or awaits to) a truthy value when the value
    passes.
    """

    def __init__(self, validations: Mapping[str, RuleFunc] | None = None):
        self.validations: dict[str, RuleFunc] = dict(BUILTIN_RULES)
        if validations:
            self.validations.update(validations)

    async def validate(
        self,
        data: Any,
        rules: Mapping[str, Any],
        messages: Mapping[str, Any] | None = None,
        formatter: Formatter | None = None,
    ) -> None:
        """Validate, stopping at the first failing rule."""
        await self._evaluate(data, rules, messages, formatter, bail=True)

    async def validate_all(
        self,
        data: Any,
        rules: Mapping[str, Any],
        messages: Mapping[str, Any] | None = None,
        formatter: Formatter | None = None,
    ) -> None:
        """Validate every rule of every field."""
        await self._evaluate(data, rules, messages, formatter, bail=False)

    async def _evaluate(
        self,
        data: Any,
        rules: Mapping[str, Any],
        messages: Mapping[str, Any] | None,
        formatter: Formatter | None,
        bail: bool,
    ) -> None:
        if not isinstance(rules, Mapping):
            raise RuleDefinitionError(
                "Rules must be a mapping of field to rule definition",
                details={"rules": repr(rules)},
            )

        compiled = {pattern: self._compile(definition) for pattern, definition in rules.items()}
        errors: list[dict[str, Any]] = []

        for pattern, field_rules in compiled.items():
            for field, value in resolve_field(data, pattern):
                for name, args in field_rules:
                    if value is MISSING and name not in PRESENCE_RULES:
                        continue

                    passed = self.validations[name](value, args)
                    if inspect.isawaitable(passed):
                        passed = await passed
                    if passed:
                        continue

                    errors.append(
                        {
                            "message": self._message(messages, pattern, field, name, args),
                            "field": field,
                            "validation": name,
                        }
                    )
                    if bail:
                        self._fail(errors, formatter)

        if errors:
            self._fail(errors, formatter)

    def _compile(self, definition: Any) -> list[tuple[str, list[str]]]:
        parsed = parse_rules(definition)
        for name, _ in parsed:
            if name not in self.validations:
                raise RuleDefinitionError(
                    f"'{name}' is not defined as a validation rule", details={"rule": name}
                )
        return parsed

    @staticmethod
    def _message(
        messages: Mapping[str, Any] | None,
        pattern: str,
        field: str,
        validation: str,
        args: list[str],
    ) -> str:
        template: Any = DEFAULT_MESSAGE
        if messages:
            for key in (f"{field}.{validation}", f"{pattern}.{validation}", validation):
                if key in messages:
                    template = messages[key]
                    break

        if callable(template):
            return str(template(field, validation, args))
        return str(template).format(field=field, validation=validation, args=", ".join(args))

    @staticmethod
    def _fail(errors: list[dict[str, Any]], formatter: Formatter | None) -> None:
        logger.debug("Rule evaluation failed for fields: %s", [e["field"] for e in errors])
        raise RuleEvaluationError(formatter(errors) if formatter else errors)
