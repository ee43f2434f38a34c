"""
Framework-agnostic policy enforcement.

Drives a `Policy` through the request flow:

1. authorize() must return a truthy value, otherwise UnauthorizedRequestError
2. permitted_query() feeds the field presence and field value checks
3. after the handler ran, permitted_fields() shapes the response content

A hook returning `True` lifts its restriction; any other falsy or empty
result permits nothing.

The host framework owns turning the raised violations into responses.
"""

import inspect
import logging
from typing import Any

from field_policy.core.errors import UnauthorizedRequestError
from field_policy.core.telemetry import get_tracer
from field_policy.policy.base import Policy
from field_policy.services.field_authorization import FieldAuthorizationService

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized request. Make sure to handle it inside policy.authorize method"

# Marks a hook the policy does not define.
_UNDEFINED = object()


async def _call_hook(policy: Policy, name: str) -> Any:
    hook = getattr(policy, name, None)
    if not callable(hook):
        return _UNDEFINED
    result = hook()
    if inspect.isawaitable(result):
        result = await result
    return result


class PolicyEnforcer:
    """Applies policies to request data and response content."""

    def __init__(self, authorization: FieldAuthorizationService | None = None):
        self.authorization = (
            authorization if authorization is not None else FieldAuthorizationService()
        )

    async def authorize_request(self, policy: Policy, data: Any) -> None:
        """
        Authorize a request and its data against a policy.

        Raises:
            UnauthorizedRequestError: If policy.authorize() returns a falsy value
            PermittedFieldsViolation: If data has fields outside permitted_query()
            PermittedFieldValuesViolation: If permitted values fail their rules
        """
        with get_tracer().start_as_current_span("field_policy.authorize_request"):
            authorized = await _call_hook(policy, "authorize")
            if authorized is not _UNDEFINED and not authorized:
                logger.info("Policy %s rejected the request", type(policy).__name__)
                raise UnauthorizedRequestError(UNAUTHORIZED_MESSAGE)

            permitted_query = await self._permitted_query(policy)
            await self.authorization.authorize_query(permitted_query, data)

    async def shape_response(self, policy: Policy, content: Any) -> Any:
        """Keep only the response fields permitted by the policy."""
        permitted_fields = await _call_hook(policy, "permitted_fields")
        # `True` keeps every field, like a policy without the hook.
        if permitted_fields is _UNDEFINED or permitted_fields is True:
            return content
        return self.authorization.project_response(permitted_fields or [], content)

    @staticmethod
    async def _permitted_query(policy: Policy) -> Any:
        permitted_query = await _call_hook(policy, "permitted_query")
        if permitted_query is _UNDEFINED or permitted_query is True:
            return None
        # A hook that returns nothing permits nothing.
        return permitted_query or []
