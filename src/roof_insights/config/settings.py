"""Configuration settings for the roofing insights service."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables (or a .env file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # LLM API keys. A missing key disables that AI path.
    anthropic_api_key: SecretStr | None = Field(
        default=None, validation_alias="ANTHROPIC_API_KEY"
    )
    openai_api_key: SecretStr | None = Field(default=None, validation_alias="OPENAI_API_KEY")

    # Model selections
    claude_model: str = Field(
        default="claude-3-5-haiku-20241022", validation_alias="CLAUDE_MODEL"
    )
    gpt_model: str = Field(default="gpt-4o-mini", validation_alias="GPT_MODEL")

    # LLM parameters
    ai_max_tokens: int = Field(default=1024, validation_alias="AI_MAX_TOKENS")
    ai_timeout: float = Field(default=20.0, validation_alias="AI_TIMEOUT")
    description_max_tokens: int = Field(default=500, validation_alias="DESCRIPTION_MAX_TOKENS")
    llm_temperature: float = Field(default=0.7, validation_alias="LLM_TEMPERATURE")

    # Rate limiting (per identity, fixed window)
    rate_limit_requests: int = Field(default=10, validation_alias="RATE_LIMIT_REQUESTS")
    rate_limit_window_seconds: float = Field(
        default=60.0, validation_alias="RATE_LIMIT_WINDOW_SECONDS"
    )

    # Insight rules and prompt hygiene
    burn_rate_alert_pct: float = Field(default=85.0, validation_alias="BURN_RATE_ALERT_PCT")
    prompt_field_max_len: int = Field(default=120, validation_alias="PROMPT_FIELD_MAX_LEN")
    description_max_len: int = Field(default=2000, validation_alias="DESCRIPTION_MAX_LEN")

    # Data store (Supabase PostgREST)
    supabase_url: str = Field(default="http://localhost:54321", validation_alias="SUPABASE_URL")
    supabase_service_key: SecretStr | None = Field(
        default=None, validation_alias="SUPABASE_SERVICE_KEY"
    )
    data_store_timeout: float = Field(default=10.0, validation_alias="DATA_STORE_TIMEOUT")

    # HTTP API
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )

    @property
    def ai_enabled(self) -> bool:
        """True when an Anthropic key is configured."""
        return bool(self.anthropic_api_key and self.anthropic_api_key.get_secret_value())


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
