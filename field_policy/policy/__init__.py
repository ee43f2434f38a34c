from field_policy.policy.base import Policy
from field_policy.policy.enforcer import PolicyEnforcer

__all__ = ["Policy", "PolicyEnforcer"]
