"""
Pydantic models shared across the compiler, projector and services.
"""

from pydantic import BaseModel, ConfigDict, Field

from field_policy.domain.enums import NodeKind

# Segment that selects every element of an array.
WILDCARD = "*"


class RuleNode(BaseModel):
    """
    One node of a compiled rule tree.

    - literal: terminal allowed field, no children
    - object: children keyed by property name
    - array: children keyed by element selector (`*` or an index string);
      each element node is either literal (element kept verbatim) or object
    """

    model_config = ConfigDict(frozen=True)

    kind: NodeKind
    children: dict[str, "RuleNode"] = Field(default_factory=dict)

    @property
    def is_literal(self) -> bool:
        return self.kind == NodeKind.LITERAL

    def element_rule(self, index: int) -> "RuleNode | None":
        """Rule for the element at `index` of an array node."""
        rule = self.children.get(str(index))
        if rule is None:
            rule = self.children.get(WILDCARD)
        return rule


class RuleTree(BaseModel):
    """Root of a compiled permitted-path set."""

    model_config = ConfigDict(frozen=True)

    root: RuleNode = Field(default_factory=lambda: RuleNode(kind=NodeKind.OBJECT))
    paths: tuple[str, ...] = ()

    @property
    def children(self) -> dict[str, RuleNode]:
        return self.root.children

    @property
    def is_empty(self) -> bool:
        return not self.root.children


class FieldMessage(BaseModel):
    """A single field-level message reported by a policy check."""

    field: str = Field(..., description="Dotted path of the offending field", examples=["users.0.age"])
    message: str = Field(..., description="Human readable explanation")
    validation: str | None = Field(
        default=None,
        description="Name of the violated rule, for value checks",
        examples=["in"],
    )
