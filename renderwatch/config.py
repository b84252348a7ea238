"""Runtime configuration — env-driven via pydantic-settings.

Reads from a .env file and RENDERWATCH_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from renderwatch.core.classifier import DEFAULT_RULES, RuleSet
from renderwatch.models.job import RenderEngine


class WatchConfig(BaseSettings):
    """Monitor configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export RENDERWATCH_LOG_LEVEL=DEBUG
        export RENDERWATCH_GRACE_DELAY_SECONDS=1.0
        export RENDERWATCH_RULES_PATH=/etc/renderwatch/rules.json

    Or via .env file::

        RENDERWATCH_DEFAULT_ENGINE=manim
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RENDERWATCH_",
        env_file_encoding="utf-8",
    )

    # Logging
    log_level: str = "INFO"
    debug: bool = False

    # Controller timing
    grace_delay_seconds: float = Field(default=0.5, ge=0.0, le=5.0)
    tick_interval_seconds: float = Field(default=1.0, gt=0.0)

    # Display
    transcript_tail: int = Field(default=200, ge=1)
    default_engine: RenderEngine = RenderEngine.P5

    # Classifier rule overrides (JSON file matching RuleSet)
    rules_path: Path | None = None

    def load_rules(self) -> RuleSet:
        """Classifier rules from ``rules_path``, or the built-in defaults."""
        if self.rules_path is None:
            return DEFAULT_RULES
        return RuleSet.from_json_file(self.rules_path)


# Module-level singleton; import as `from renderwatch.config import config`
config = WatchConfig()
