"""
Services package for field policy enforcement.

Contains the orchestration that combines the compiler, projector, diff and
value validation into request and response checks.
"""

from field_policy.services.field_authorization import (
    FieldAuthorizationService,
    normalize_permitted_query,
)

__all__ = ["FieldAuthorizationService", "normalize_permitted_query"]
