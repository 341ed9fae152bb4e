"""Engine configuration read from the environment (and an optional .env file)."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from lineup.game import VARIANTS, GameVariant
from lineup.policy import Personality

logger = logging.getLogger(__name__)

ENV_PREFIX = "LINEUP_"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class EngineSettings(BaseModel):
    help_level: int = Field(default=0, ge=0, le=4)
    personality: Personality = Personality.CENTER_WEIGHTED_RANDOM
    seed: int | None = None
    variant: str = "connect-four"
    debug_checks: bool = False
    log_level: str = "WARNING"

    @field_validator("variant")
    @classmethod
    def _known_variant(cls, value: str) -> str:
        if value not in VARIANTS:
            raise ValueError(f"unknown variant {value!r}, expected one of {sorted(VARIANTS)}")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"unknown log level {value!r}")
        return value

    @property
    def game_variant(self) -> GameVariant:
        return VARIANTS[self.variant]


def load_settings(env_file: str | None = None) -> EngineSettings:
    """Build settings from ``LINEUP_*`` environment variables.

    Invalid values raise ``pydantic.ValidationError`` rather than falling
    back to defaults.
    """
    load_dotenv(env_file)
    raw = {}
    for name in EngineSettings.model_fields:
        value = os.getenv(ENV_PREFIX + name.upper())
        if value not in (None, ""):
            raw[name] = value
    return EngineSettings.model_validate(raw)


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("lineup").setLevel(level.upper())


def init_from_env(env_file: str | None = None) -> EngineSettings:
    """Load settings and apply the configured log level. Call once at startup."""
    settings = load_settings(env_file)
    configure_logging(settings.log_level)
    logger.debug("Loaded settings: %s", settings.model_dump())
    return settings
