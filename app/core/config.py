from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "feedback-forms"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite+pysqlite:///./feedback.db"
    DB_POOL_TIMEOUT_SECONDS: int = 10

    # No default: the process must not start without a signing secret.
    JWT_SECRET: str
    JWT_TTL_DAYS: int = 7
    AUTH_COOKIE_NAME: str = "token"

    CORS_ORIGINS: str = "http://localhost:3000"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    REGISTRATION_ENABLED: bool = True
    DELETE_RESPONSES_WITH_FORM: bool = False
    REJECT_UNKNOWN_QUESTION_IDS: bool = False

    @field_validator("JWT_SECRET")
    @classmethod
    def _secret_not_blank(cls, value: str) -> str:
        if not str(value or "").strip():
            raise ValueError("JWT_SECRET must not be empty")
        return value

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.strip().lower() == "production"

settings = Settings()
