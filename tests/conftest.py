"""
Pytest configuration and shared fixtures.

Provides:
- AnyIO backend selection for async tests
- Compile cache isolation between tests
- Fresh service/validator instances
- Metric sample helper reading the library's private registry
"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402 (import after path setup)

from field_policy.compiler.rule_parser import clear_compile_cache  # noqa: E402
from field_policy.core.observability import metrics  # noqa: E402
from field_policy.policy import PolicyEnforcer  # noqa: E402
from field_policy.services import FieldAuthorizationService  # noqa: E402
from field_policy.validation import PolicyValidator  # noqa: E402


# =============================================================================
# AnyIO Backend Configuration
# =============================================================================
# Per AnyIO testing docs: https://anyio.readthedocs.io/en/stable/testing.html
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clean_compile_cache():
    """Compiled trees are memoized process-wide; start every test cold."""
    clear_compile_cache()
    yield
    clear_compile_cache()


@pytest.fixture
def validator() -> PolicyValidator:
    return PolicyValidator()


@pytest.fixture
def service(validator: PolicyValidator) -> FieldAuthorizationService:
    return FieldAuthorizationService(validator)


@pytest.fixture
def enforcer(service: FieldAuthorizationService) -> PolicyEnforcer:
    return PolicyEnforcer(service)


@pytest.fixture
def metric_value():
    """Read a sample from the library registry (0.0 when unset)."""

    def _read(name: str, labels: dict[str, str] | None = None) -> float:
        value = metrics.registry.get_sample_value(name, labels or {})
        return value or 0.0

    return _read
