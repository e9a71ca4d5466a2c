"""
Configuration management.

Loads settings from environment variables and .env file.
Prefix: MENTORA_
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MENTORA_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Generative AI
    ai_api_key: str = Field(default="", description="API key for the chat/image provider")
    chat_model: str = Field(
        default="gemini/gemini-2.5-flash",
        description="LiteLLM model name used for streaming chat",
    )
    image_model: str = Field(
        default="gemini/imagen-4.0-generate-001",
        description="LiteLLM model name used for image generation",
    )
    max_tokens: int = Field(default=2048, description="Max tokens per chat reply")
    temperature: float = Field(default=0.7, description="Sampling temperature")

    # Storage
    data_dir: Path = Field(default=Path("data"), description="Data storage directory")
    db_name: str = Field(default="mentora.db", description="SQLite database name")

    # Memory
    cache_ttl_seconds: float = Field(default=300.0, description="Default cache entry TTL")
    cache_sweep_interval_seconds: float = Field(
        default=600.0, description="Period of the eager cache sweep"
    )
    session_max_age_hours: float = Field(
        default=24.0, description="Age after which session memory is discarded"
    )
    session_purge_interval_seconds: float = Field(
        default=3600.0, description="Period of the expired-session purge"
    )

    # Chat
    max_context_messages: int = Field(default=20, description="Max history turns sent to the model")
    default_domain: str = Field(default="programming", description="Domain used by the CLI")

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()
