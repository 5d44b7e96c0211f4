# config.py
# Runtime settings for the HTTP app and the CLI driver.

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "SLIDE2048_"
DEFAULT_BEST_SCORE_PATH = Path.home() / ".slide2048" / "best_score.json"


class Settings(BaseModel):
    """Settings shared by the API and the CLI."""
    best_score_path: Path = Field(
        default=DEFAULT_BEST_SCORE_PATH,
        description="JSON file holding the persisted best score.",
    )
    rate_limit: str = Field(
        default="100/minute",
        description="slowapi limit string applied to every game endpoint.",
    )
    log_level: str = Field(default="INFO", description="Root logging level name.")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Builds settings from SLIDE2048_* environment variables, falling back to defaults."""
        environ = os.environ if environ is None else environ
        values = {}
        for field_name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + field_name.upper())
            if raw:
                values[field_name] = raw
        return cls(**values)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
