"""Runtime configuration for the promotion handler.

Read from environment variables prefixed with ``PROMO_``.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


class Settings(BaseSettings):
    """Runtime configuration loaded from environment."""

    model_config = SettingsConfigDict(env_prefix="PROMO_", extra="ignore")

    DATA_DIR: Optional[Path] = Field(
        default=None,
        description="Directory holding the JSON fixtures. Defaults to ./data at the project root.",
    )
    EXCLUSION_PROVIDERS: list[str] = Field(
        default_factory=list,
        description=(
            "Dotted import paths of exclusion providers, e.g. "
            "'myshop.promos:ClearanceExclusions'. Loaded once at startup."
        ),
    )
    EXCLUSION_STRICT_MODE: bool = Field(
        default=False,
        description="Abort the whole activation when an exclusion provider fails instead of skipping it.",
    )
    LOG_LEVEL: str = Field(default="INFO", description="Log level used by the API and CLI entry points.")

    @property
    def data_dir(self) -> Path:
        return self.DATA_DIR or DEFAULT_DATA_DIR


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings()
