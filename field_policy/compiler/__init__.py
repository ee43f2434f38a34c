"""
Permitted-path engine.

This package compiles permitted field paths and applies them to untrusted
nested data.

Key Components:
- rule_parser: Compiles dot-notation paths into a RuleTree
- projector: Filters a value down to the permitted paths
- deep_diff: Structural diff used to name unauthorized fields
- values: Runtime value classification shared by the above

Design Principles:
- Fail closed: a shape mismatch omits data, never exposes it
- Purity: no I/O, no shared mutable state, inputs are never mutated
- Explicitness: path shapes that cannot be expressed are rejected at compile time
"""

from field_policy.compiler.deep_diff import deep_diff
from field_policy.compiler.projector import project, project_many, project_response
from field_policy.compiler.rule_parser import clear_compile_cache, compile_path_rules

__all__ = [
    "compile_path_rules",
    "clear_compile_cache",
    "project",
    "project_many",
    "project_response",
    "deep_diff",
]
