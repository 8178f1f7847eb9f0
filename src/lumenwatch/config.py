"""Runtime settings, read from LUMENWATCH_* environment variables."""

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from lumenwatch.exceptions import ConfigurationError

ENV_PREFIX = "LUMENWATCH_"

DEFAULT_DB_PATH = Path("data/lumenwatch.duckdb")
DEFAULT_TABLE = "inference_table"
DEFAULT_REFRESH_INTERVAL = 30.0  # seconds, matches the dashboard poll period


class Settings(BaseModel):
    """LumenWatch configuration."""

    supabase_url: str | None = None
    supabase_key: str | None = None
    table: str = Field(default=DEFAULT_TABLE, min_length=1)
    refresh_interval: float = Field(default=DEFAULT_REFRESH_INTERVAL, gt=0)
    http_timeout: float = Field(default=30.0, gt=0)
    db_path: Path = DEFAULT_DB_PATH

    @property
    def demo_mode(self) -> bool:
        """No backend configured, so readings come from the simulator."""
        return not self.supabase_url


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build settings from the environment.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Validated settings

    Raises:
        ConfigurationError: If a variable holds an invalid value
    """
    env = os.environ if environ is None else environ
    values = {
        name: env[ENV_PREFIX + name.upper()]
        for name in Settings.model_fields
        if env.get(ENV_PREFIX + name.upper())
    }
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid LumenWatch settings: {e}") from e
