"""Runtime settings read from ``EVENTMAP_*`` environment variables.

``.env`` is loaded by main.py before the settings are built.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DIAGONAL_COST = 1.4
DEFAULT_SIMPLIFY_TOLERANCE = 0.5
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_BLOCK_SEARCH_RADIUS = 10
DEFAULT_MAX_SESSIONS = 100


class Settings(BaseSettings):
    """Planner and API settings."""

    model_config = SettingsConfigDict(
        env_prefix="EVENTMAP_",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )

    diagonal_cost: float = Field(default=DEFAULT_DIAGONAL_COST, gt=1.0, lt=2.0)
    simplify_tolerance: float = Field(default=DEFAULT_SIMPLIFY_TOLERANCE, ge=0.0)
    history_limit: int = Field(default=DEFAULT_HISTORY_LIMIT, ge=1)
    block_search_radius: int = Field(default=DEFAULT_BLOCK_SEARCH_RADIUS, ge=1)
    max_sessions: int = Field(default=DEFAULT_MAX_SESSIONS, ge=1)
    log_level: str = "INFO"


def load_settings(**overrides) -> Settings:
    """Build Settings from the environment; keyword overrides win."""
    return Settings(**overrides)
