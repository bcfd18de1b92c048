"""Configuration management for the Word Chain bot.

Uses pydantic for validation and type safety.
"""
from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wordchain.constants import (
    BOT_RANDOM_ATTEMPTS,
    KBBI_API_TIMEOUT,
    KBBI_API_URL,
    PROMPT_BONUS_MAX,
    PROMPT_MAX_POINTS,
    PROMPT_MIN_POINTS,
    WIN_THRESHOLD,
)

logger = logging.getLogger('wordchain_bot')


class Settings(BaseSettings):
    """Application settings with validation.

    All settings are loaded from environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # Required settings
    discord_token: str = Field(..., validation_alias='DISCORD_TOKEN')

    # Optional settings with defaults
    log_level: str = Field(default="INFO", validation_alias='LOG_LEVEL')
    bot_prefix: str = Field(default="..", validation_alias='BOT_PREFIX')

    # Dictionary API
    oracle_base_url: str = Field(default=KBBI_API_URL, validation_alias='KBBI_API_URL')
    oracle_timeout: float = Field(default=KBBI_API_TIMEOUT, validation_alias='KBBI_API_TIMEOUT')

    # Game tuning
    win_threshold: int = Field(default=WIN_THRESHOLD, validation_alias='WORDCHAIN_WIN_THRESHOLD')
    prompt_min_points: int = Field(default=PROMPT_MIN_POINTS, validation_alias='WORDCHAIN_PROMPT_MIN_POINTS')
    prompt_max_points: int = Field(default=PROMPT_MAX_POINTS, validation_alias='WORDCHAIN_PROMPT_MAX_POINTS')
    prompt_bonus_max: int = Field(default=PROMPT_BONUS_MAX, validation_alias='WORDCHAIN_PROMPT_BONUS_MAX')
    bot_random_attempts: int = Field(default=BOT_RANDOM_ATTEMPTS, validation_alias='WORDCHAIN_BOT_RANDOM_ATTEMPTS')

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @field_validator('oracle_base_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip('/')

    @field_validator('win_threshold', 'prompt_min_points', 'prompt_max_points', 'bot_random_attempts')
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @field_validator('prompt_bonus_max')
    @classmethod
    def validate_bonus(cls, v):
        if v < 0:
            raise ValueError("prompt_bonus_max cannot be negative")
        return v


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the application settings instance.

    Returns:
        Settings object with validated configuration
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
