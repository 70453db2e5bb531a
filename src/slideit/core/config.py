from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    # App/Env
    ENV: str = "dev"
    APP_NAME: str = "slideit"
    PORT: int = 8080
    PUBLIC_BASE_URL: str = "http://localhost:8080"
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"
    MAX_UPLOAD_MB: int = 25

    # Auth
    JWT_PUBLIC_KEY: Optional[str] = None

    # Generative text service (any OpenAI-compatible endpoint)
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TEMPERATURE: float = 0.4
    LLM_TIMEOUT_SEC: float = 120.0

    # Image generation service
    IMAGE_PROVIDER: str = "pollinations"  # "pollinations" | "stability" | "none"
    IMAGE_API_BASE: str = "https://image.pollinations.ai"
    STABILITY_API_KEY: Optional[str] = None
    IMAGE_WIDTH: int = 1024
    IMAGE_HEIGHT: int = 768

    # Illustration retry + pacing
    IMAGE_MAX_ATTEMPTS: int = 3
    IMAGE_RETRY_DELAY_SEC: float = 2.0
    IMAGE_TIMEOUT_SEC: float = 20.0
    IMAGE_BATCH_SIZE: int = 5
    IMAGE_ITEM_DELAY_SEC: float = 1.0
    IMAGE_BATCH_COOLDOWN_SEC: float = 5.0

    # Slide count (no ceiling unless configured)
    MAX_SLIDE_COUNT: Optional[int] = None

    # Artifacts: local dir, or S3 when S3_BUCKET is set
    ARTIFACTS_DIR: str = "./var/artifacts"
    S3_ENDPOINT: Optional[str] = None
    S3_BUCKET: Optional[str] = None
    AWS_REGION: str = "us-east-1"
    S3_PRESIGN_EXPIRES: int = 86400

    # Jobs
    JOB_STORE: str = "memory"  # "memory" | "sql"
    DATABASE_URL: str = "postgresql+asyncpg://postgres:postgres@db:5432/slideit"
    DATABASE_URL_SYNC: str = "postgresql+psycopg://postgres:postgres@db:5432/slideit"
    DB_STATEMENT_TIMEOUT_MS: int = 30000

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
