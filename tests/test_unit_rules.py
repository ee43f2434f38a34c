"""
Tests for the built-in rule engine.
"""

import pytest

from field_policy.core.errors import RuleDefinitionError, RuleEvaluationError
from field_policy.validation.rules import MISSING, RuleEngine, parse_rules, resolve_field


async def errors_of(data, rules, messages=None):
    """Run validate_all and return the captured error list ([] when passing)."""
    try:
        await RuleEngine().validate_all(data, rules, messages)
    except RuleEvaluationError as e:
        return e.errors
    return []


class TestParseRules:
    """Rule definition parsing."""

    @pytest.mark.anyio
    async def test_pipe_separated(self):
        assert parse_rules("required|in:a,b|max:3") == [
            ("required", []),
            ("in", ["a", "b"]),
            ("max", ["3"]),
        ]

    @pytest.mark.anyio
    async def test_list_definition(self):
        assert parse_rules(["integer", "above:0"]) == [("integer", []), ("above", ["0"])]

    @pytest.mark.anyio
    async def test_raw_argument_rules_keep_commas(self):
        assert parse_rules("regex:^a{1,3}$") == [("regex", ["^a{1,3}$"])]

    @pytest.mark.anyio
    async def test_blank_tokens_ignored(self):
        assert parse_rules(" required || ") == [("required", [])]

    @pytest.mark.anyio
    @pytest.mark.parametrize("definition", [42, {"in": "a"}, ["ok", 1]])
    async def test_invalid_definition(self, definition):
        with pytest.raises(RuleDefinitionError, match="string or an array"):
            parse_rules(definition)


class TestResolveField:
    """Field pattern expansion."""

    @pytest.mark.anyio
    async def test_plain_path(self):
        assert resolve_field({"a": {"b": 1}}, "a.b") == [("a.b", 1)]

    @pytest.mark.anyio
    async def test_missing_path(self):
        assert resolve_field({"a": {}}, "a.b") == [("a.b", MISSING)]

    @pytest.mark.anyio
    async def test_wildcard_expands_elements(self):
        data = {"users": [{"name": "a"}, {}]}
        assert resolve_field(data, "users.*.name") == [
            ("users.0.name", "a"),
            ("users.1.name", MISSING),
        ]

    @pytest.mark.anyio
    async def test_wildcard_over_non_sequence_yields_nothing(self):
        assert resolve_field({"users": "x"}, "users.*.name") == []

    @pytest.mark.anyio
    async def test_index_segment(self):
        assert resolve_field({"tags": ["x", "y"]}, "tags.1") == [("tags.1", "y")]
        assert resolve_field({"tags": ["x"]}, "tags.5") == [("tags.5", MISSING)]


class TestBuiltinRules:
    """Built-in rule semantics."""

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "rule,value,valid",
        [
            ("*", None, True),
            ("required", "x", True),
            ("required", "", False),
            ("required", None, False),
            ("required", [], False),
            ("string", "x", True),
            ("string", 1, False),
            ("number", "1.5", True),
            ("number", True, False),
            ("integer", 3, True),
            ("integer", "3", True),
            ("integer", 3.5, False),
            ("boolean", "true", True),
            ("boolean", 2, False),
            ("object", {}, True),
            ("object", [], False),
            ("array", [], True),
            ("array", "abc", False),
            ("in:a,b", "a", True),
            ("in:a,b", "c", False),
            ("in:a,b", ["a", "b"], True),
            ("in:true", True, True),
            ("not_in:a,b", "c", True),
            ("not_in:a,b", "a", False),
            ("min:2", "ab", True),
            ("min:2", [1], False),
            ("max:2", [1, 2, 3], False),
            ("above:0", 1, True),
            ("above:0", 0, False),
            ("under:10", "9", True),
            ("under:10", 10, False),
            ("regex:^[a-z]+$", "abc", True),
            ("regex:^[a-z]+$", "ABC", False),
            ("equals:yes", "yes", True),
            ("equals:yes", "no", False),
        ],
    )
    async def test_rule(self, rule, value, valid):
        errors = await errors_of({"field": value}, {"field": rule})
        assert (errors == []) is valid

    @pytest.mark.anyio
    async def test_missing_fields_skip_all_but_required(self):
        assert await errors_of({}, {"a": "string|in:x|min:3"}) == []

        errors = await errors_of({}, {"a": "required|string"})
        assert [e["validation"] for e in errors] == ["required"]

    @pytest.mark.anyio
    async def test_default_message(self):
        assert await errors_of({"a": 1}, {"a": "string"}) == [
            {"message": "string validation failed on a", "field": "a", "validation": "string"}
        ]

    @pytest.mark.anyio
    async def test_callable_message(self):
        errors = await errors_of(
            {"a": 1},
            {"a": "in:x,y"},
            messages={"a.in": lambda field, validation, args: f"{field} not in {args}"},
        )
        assert errors[0]["message"] == "a not in ['x', 'y']"

    @pytest.mark.anyio
    async def test_wildcard_pattern_message_key(self):
        errors = await errors_of(
            {"tags": ["ok", 2]},
            {"tags.*": "string"},
            messages={"tags.*.string": "Each tag must be text"},
        )
        assert errors == [{"message": "Each tag must be text", "field": "tags.1", "validation": "string"}]


class TestRuleDefinitionErrors:
    """Malformed rule sets are programmer errors, not validation failures."""

    @pytest.mark.anyio
    async def test_unknown_rule(self):
        with pytest.raises(RuleDefinitionError, match="'nope' is not defined"):
            await RuleEngine().validate({"a": 1}, {"a": "nope"})

    @pytest.mark.anyio
    async def test_unknown_rule_detected_before_evaluation(self):
        with pytest.raises(RuleDefinitionError):
            await RuleEngine().validate({"a": 1}, {"a": "string", "b": "nope"})

    @pytest.mark.anyio
    async def test_non_numeric_argument(self):
        with pytest.raises(RuleDefinitionError, match="numeric argument"):
            await RuleEngine().validate({"a": "x"}, {"a": "max:lots"})

    @pytest.mark.anyio
    async def test_invalid_regex(self):
        with pytest.raises(RuleDefinitionError, match="invalid pattern"):
            await RuleEngine().validate({"a": "x"}, {"a": "regex:("})

    @pytest.mark.anyio
    async def test_rules_must_be_mapping(self):
        with pytest.raises(RuleDefinitionError, match="mapping"):
            await RuleEngine().validate({}, ["a"])

    @pytest.mark.anyio
    async def test_engine_level_custom_rules(self):
        engine = RuleEngine({"even": lambda value, args: value % 2 == 0})

        await engine.validate({"n": 2}, {"n": "even"})
        with pytest.raises(RuleEvaluationError):
            await engine.validate({"n": 3}, {"n": "even"})
