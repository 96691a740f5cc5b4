"""Application configuration using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Chatbot Maker"
    environment: str = "development"
    log_level: str = "info"
    host: str = "0.0.0.0"
    port: int = 5000

    # Storage (empty URI selects the in-memory store)
    mongodb_uri: str = ""
    mongodb_database: str = "chatbot"

    # Providers
    default_provider: str = "cohere"
    default_model: str = "command-r-plus-08-2024"
    max_tokens: int = 8192
    openai_api_key: str = ""
    cohere_api_key: str = ""
    google_api_key: str = ""

    # Auth
    auth_required: bool = True
    jwt_secret: str = "dev-secret"
    jwt_ttl_seconds: int = 7 * 24 * 60 * 60

    # Limits
    quota_per_minute: int = 60
    chat_rate_limit_per_minute: int = 20

    # Seeding
    seed_username: str = "demo"

    # CORS
    frontend_url: str = "http://localhost:5173"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def uses_mongodb(self) -> bool:
        return bool(self.mongodb_uri)


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency for injecting settings."""
    return settings
