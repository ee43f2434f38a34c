"""
Base class for request policies.

A policy answers three optional questions about one request. Each hook may
be a plain or an async method; a hook that is not defined means "no
restriction" for that question.

- authorize(): may this request proceed at all?
- permitted_query(): which request fields (and value constraints) are allowed?
  Return a list of paths or a mapping of path -> rules.
- permitted_fields(): which response fields may be returned?

Example:
    class PostPolicy(Policy):
        def authorize(self):
            return self.context["user"] is not None

        def permitted_query(self):
            return {"title": "required|string", "tags.*": "string"}

        async def permitted_fields(self):
            return ["id", "title", "author.name"]
"""

from typing import Any


class Policy:
    """Request policy. Subclasses define any of the hooks listed above."""

    def __init__(self, context: Any = None):
        self.context = context
