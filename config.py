"""
Module: config.py
Description: Global configuration for the Tribunal arbitration service
"""

from typing import Dict
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TribunalConfig(BaseSettings):
    """Tribunal Configuration"""

    # Arbitration windows
    EDIT_WINDOW_SECONDS: int = 3600 * 24 * 3  # Claimant amends / respondent responds
    MIN_RESERVATION_SECONDS: int = 3600 * 24 * 4  # Minimum gap between filing and expiration
    MAX_EVIDENCE_BYTES: int = 32767  # UTF-8 bytes, inclusive

    # Storage Settings
    STORAGE_BACKEND: str = Field(default="memory")  # "memory" or "redis"
    REDIS_URL: str = Field(default="redis://localhost:6379")
    REDIS_KEY_PREFIX: str = Field(default="tribunal")
    OUTCOME_CHANNEL: str = Field(default="tribunal:outcomes")

    # Network Settings
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)

    # Security Settings
    JWT_SECRET: str = Field(default="tribunal-dev-secret")  # Override in .env for production
    JWT_ALGORITHM: str = "HS256"
    TOKEN_EXPIRE_MINUTES: int = 60

    # Account directory seed: name -> numeric identity
    ACCOUNTS: Dict[str, int] = Field(default_factory=dict)

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


# Global configuration instance
config = TribunalConfig()

