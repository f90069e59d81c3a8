from typing import Literal, Optional

from pydantic_settings import BaseSettings

GIB = 1024 * 1024 * 1024


class Settings(BaseSettings):
    # Application
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "info"

    # Storage backend: memory | disk | database
    STORAGE_BACKEND: Literal["memory", "disk", "database"] = "database"
    STORAGE_DIR: str = "storage"

    # Quota
    MAX_FILE_SIZE: int = 100 * GIB
    STORAGE_LIMIT: int = 100 * GIB

    # Authentication
    SECRET_KEY: str = "your-secret-key-here"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    AUTH_REQUIRED: bool = True

    # PostgreSQL (docker defaults)
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "cloud_drive"
    DATABASE_DSN: Optional[str] = None  # e.g. sqlite+aiosqlite:///./drive.db

    # Cache; empty REDIS_URL falls back to the in-memory backend
    REDIS_URL: str = ""
    STORAGE_CACHE_TTL: int = 10

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_DSN:
            return self.DATABASE_DSN
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"


settings = Settings()
