"""Library configuration using Pydantic Settings.

Configuration is loaded from environment variables prefixed with
`FIELD_POLICY_`.

Optionally, you may point `ENV_FILE` at a local env file (for development).
Loading an env file is opt-in so that deployments relying on injected
environment variables keep a single source of truth. Variables already set
in the environment take precedence over the file.
"""

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Field policy settings with type validation.

    All values have safe defaults, so importing the library never requires
    any environment to be set.
    """

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE") or None, env_prefix="FIELD_POLICY_", extra="ignore"
    )

    # Application
    app_name: str = "field-policy"
    log_level: str = "INFO"

    # Observability
    structured_logs: bool = False
    metrics_enabled: bool = True

    # Compiler
    # Number of distinct permitted-path lists whose compiled trees are kept.
    # 0 disables memoization.
    compiler_cache_size: int = Field(default=256, ge=0)
    compiler_max_path_segments: int = Field(default=32, ge=1)

    # Structural diff
    # Nesting below this depth is reported as one changed entry instead of
    # being walked further.
    diff_max_depth: int = Field(default=64, ge=1)

    # Value validation
    # Constraint applied to permitted paths declared without one.
    default_value_rule: str = "*"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level and reject unknown names."""
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"log_level must be a standard logging level name, got '{v}'")
        return level

    @field_validator("default_value_rule")
    @classmethod
    def validate_default_value_rule(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("default_value_rule cannot be empty")
        return v.strip()


settings = Settings()
