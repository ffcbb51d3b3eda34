"""Application configuration."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings validated at startup."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    openrouter_api_key: str = Field(..., alias="OPENROUTER_API_KEY")
    openrouter_model: str = Field(default="google/gemini-2.5-flash", alias="OPENROUTER_MODEL")
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        alias="OPENROUTER_BASE_URL",
    )
    request_timeout_seconds: float = Field(default=30.0, alias="REQUEST_TIMEOUT_SECONDS")
    # Hard ceiling for one chat turn, mirrors the hosting platform's request limit.
    chat_max_duration_seconds: float = Field(default=60.0, alias="CHAT_MAX_DURATION_SECONDS")
    chat_max_steps: int = Field(default=5, alias="CHAT_MAX_STEPS")

    alpha_vantage_api_key: str = Field(default="demo", alias="ALPHA_VANTAGE_API_KEY")

    resend_api_key: str = Field(default="", alias="RESEND_API_KEY")
    email_user: str = Field(default="", alias="EMAIL_USER")
    email_password: str = Field(default="", alias="EMAIL_PASSWORD")
    smtp_host: str = Field(default="smtp.hostinger.com", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    email_from_address: str = Field(default="service@waiveer.com", alias="EMAIL_FROM_ADDRESS")
    email_from_name: str = Field(default="Waiveer Team", alias="EMAIL_FROM_NAME")
    public_app_url: str = Field(default="https://waiveer.com", alias="PUBLIC_APP_URL")


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()
