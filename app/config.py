from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # OpenAI settings (absent key => gateway runs unconfigured, never a crash)
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_TIMEOUT_SECONDS: float = 30.0

    # =================================================================
    # GENERATION BUDGETS - per feature
    # =================================================================
    REFINE_TEMPERATURE: float = 0.7
    REFINE_MAX_TOKENS: int = 500
    REFINE_ALL_MAX_TOKENS: int = 1000

    COACH_TEMPERATURE: float = 0.7
    COACH_MAX_TOKENS: int = 500

    RADAR_TEMPERATURE: float = 0.7
    RADAR_TIP_TEMPERATURE: float = 0.8
    RADAR_MAX_TOKENS: int = 400

    # Auth settings
    JWT_SECRET: str | None = None
    JWT_AUDIENCE: str = "authenticated"

    # Browser clients
    CORS_ALLOWED_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Proxy handling for request context
    TRUST_X_FORWARDED_FOR: bool = False
    TRUSTED_PROXY_IPS: list[str] = []

    SEED_SAMPLE_DATA: bool = True

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
