"""Configuration management using pydantic-settings.

Key patterns:
1. Multiple env files (.env, .env.local) - local overrides shared
2. Optional API key with a startup warning
3. validation_alias for explicit env var names
4. Singleton instance for easy import
5. Export to os.environ for the agent CLI subprocess

Usage:
    from buildit.agent.config import settings
    print(settings.games_path)
"""

import logging
import os
from pathlib import Path
from typing import Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The Anthropic key uses its standard name so the agent CLI picks it up.
    Everything else uses the BUILDIT_ prefix.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        extra="ignore",
    )

    @model_validator(mode="after")
    def warn_missing_optional_keys(self) -> Self:
        """Warn at startup if the API key is missing.

        Listing, session queries and the policy itself work without it;
        only generate/improve need a live agent.
        """
        if not self.anthropic_api_key:
            logger.warning(
                "ANTHROPIC_API_KEY is not set; generate and improve will fail"
            )
        return self

    # ==========================================================================
    # API KEYS
    # ==========================================================================

    anthropic_api_key: str | None = Field(
        default=None,
        validation_alias="ANTHROPIC_API_KEY",
        description="Anthropic API key (required for agent runs)",
    )

    # ==========================================================================
    # MODEL SETTINGS
    # ==========================================================================

    model: str = Field(
        default="claude-sonnet-4-20250514",
        validation_alias="BUILDIT_MODEL",
        description="Claude model to use",
    )

    # ==========================================================================
    # PATHS
    # ==========================================================================

    games_path: Path = Field(
        default=Path("./games"),
        validation_alias="BUILDIT_GAMES_PATH",
        description="Directory holding one working directory per game",
    )

    shared_path: Path = Field(
        default=Path("./shared"),
        validation_alias="BUILDIT_SHARED_PATH",
        description="Framework files copied read-only into each game",
    )

    # ==========================================================================
    # LIMITS
    # ==========================================================================

    improve_max_turns: int = Field(
        default=30,
        validation_alias="BUILDIT_IMPROVE_MAX_TURNS",
        description="Maximum agent turns per improvement",
    )

    generate_max_turns: int = Field(
        default=50,
        validation_alias="BUILDIT_GENERATE_MAX_TURNS",
        description="Maximum agent turns when scaffolding a new game",
    )

    # ==========================================================================
    # SESSION REUSE THRESHOLDS
    # ==========================================================================

    session_ttl_minutes: float = Field(
        default=5.0,
        validation_alias="BUILDIT_SESSION_TTL_MINUTES",
        description="Minutes after which the upstream prompt cache is assumed gone",
    )

    max_session_improvements: int = Field(
        default=5,
        validation_alias="BUILDIT_MAX_SESSION_IMPROVEMENTS",
        description="Improvements in one session before forcing a fresh start",
    )

    max_context_tokens: int = Field(
        default=30_000,
        validation_alias="BUILDIT_MAX_CONTEXT_TOKENS",
        description="Reusable context size (tokens) above which sessions reset",
    )

    max_last_cost_usd: float = Field(
        default=0.20,
        validation_alias="BUILDIT_MAX_LAST_COST_USD",
        description="Cost of the previous improvement above which sessions reset",
    )

    # ==========================================================================
    # VERIFICATION
    # ==========================================================================

    typecheck_command: str = Field(
        default="npx",
        validation_alias="BUILDIT_TYPECHECK_COMMAND",
        description="Launcher used to run tsc over the edited server files",
    )


# Singleton instance
settings = Settings.model_validate({})

# Export API keys to os.environ for the agent CLI subprocess
_ENV_EXPORTS = [
    ("ANTHROPIC_API_KEY", settings.anthropic_api_key),
]

for env_name, value in _ENV_EXPORTS:
    if value and env_name not in os.environ:
        os.environ[env_name] = value
