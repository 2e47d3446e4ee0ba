from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List, Optional
import os


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )
    # Application
    app_name: str = "Taskflow"
    app_version: str = "1.0.0"
    app_url: str = Field(default="http://localhost:8000", env="APP_URL")
    debug: bool = Field(default=False, env="DEBUG")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./taskflow.db", env="DATABASE_URL"
    )
    database_echo: bool = Field(default=False, env="DATABASE_ECHO")

    # Authentication & Security
    secret_key: str = Field(default="change-me", env="SECRET_KEY")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # AI & LLM Configuration
    llm_provider: str = Field(default="openai", env="LLM_PROVIDER")  # openai or ollama
    openai_api_key: str = Field(default="not-needed", env="OPENAI_API_KEY")
    openai_api_base: Optional[str] = Field(default=None, env="OPENAI_API_BASE")
    openai_model: str = Field(default="gpt-4o-mini", env="OPENAI_MODEL")
    llm_temperature: float = Field(default=0.3, env="LLM_TEMPERATURE")
    max_tokens: int = Field(default=2000, env="MAX_TOKENS")
    llm_timeout: float = Field(default=30.0, env="LLM_TIMEOUT")  # seconds

    # Ollama Configuration
    ollama_base_url: str = Field(default="http://localhost:11434", env="OLLAMA_BASE_URL")
    ollama_model: str = Field(default="llama3.2", env="OLLAMA_MODEL")

    # Notifications (SMTP). Messages are only logged when smtp_host is unset.
    smtp_host: Optional[str] = Field(default=None, env="SMTP_HOST")
    smtp_port: int = Field(default=587, env="SMTP_PORT")
    smtp_username: Optional[str] = Field(default=None, env="SMTP_USERNAME")
    smtp_password: Optional[str] = Field(default=None, env="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(default=True, env="SMTP_USE_TLS")
    mail_from: str = Field(default="no-reply@taskflow.local", env="MAIL_FROM")

    # CORS
    allowed_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        env="ALLOWED_ORIGINS"
    )

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # Rate limiting for the AI endpoint (per principal)
    ai_rate_limit_capacity: int = Field(default=10, env="AI_RATE_LIMIT_CAPACITY")
    ai_rate_limit_refill: int = Field(default=10, env="AI_RATE_LIMIT_REFILL")
    ai_rate_limit_interval_seconds: float = Field(
        default=60.0, env="AI_RATE_LIMIT_INTERVAL_SECONDS"
    )

    # Membership
    default_member_role: str = Field(default="MEMBER", env="DEFAULT_MEMBER_ROLE")


# Environment-specific configurations
class DevelopmentConfig(Settings):
    debug: bool = True
    log_level: str = "DEBUG"


class ProductionConfig(Settings):
    debug: bool = False
    database_echo: bool = False
    log_level: str = "WARNING"


class TestingConfig(Settings):
    database_url: str = "sqlite+aiosqlite:///:memory:"
    secret_key: str = "test-secret-key"
    openai_api_key: str = "test-openai-key"


def get_settings() -> Settings:
    """Factory function to get settings based on environment"""
    env = os.getenv("ENVIRONMENT", "development").lower()

    if env == "production":
        return ProductionConfig()
    elif env == "testing":
        return TestingConfig()
    else:
        return DevelopmentConfig()


# Global settings instance for the selected environment
settings = get_settings()
