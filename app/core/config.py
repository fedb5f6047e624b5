from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]

    # Identity provider tokens (verified only, never issued here)
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"

    # Database
    POSTGRES_HOST: str = "db"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "therapy_chat"
    DATABASE_URL: str | None = None  # Overrides the POSTGRES_* settings when set
    AUTO_CREATE_TABLES: bool = False

    # Redis (completion state mirror)
    REDIS_URL: str = "redis://redis:6379/0"
    COMPLETION_STATE_TTL_SECONDS: int = 3600

    # OpenAI
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_MAX_TOKENS: int = 500

    # Chat orchestration
    CHAT_HISTORY_LIMIT: int = 10
    MAX_CONTEXT_TOKENS: int = 6000
    GENERATION_TIMEOUT_SECONDS: float = 120.0
    TITLE_STREAMING_ENABLED: bool = False
    TITLE_MAX_TOKENS: int = 20


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
