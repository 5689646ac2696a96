from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    SERVICE_NAME: str = "inventory-service"
    SERVICE_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "inventory"
    POSTGRES_USER: str = "inventory"
    POSTGRES_PASSWORD: str = "inventory"
    # Full URL wins over the POSTGRES_* parts, e.g. sqlite:///inventory.db
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 5
    DB_ECHO: bool = False
    AUTO_MIGRATE: bool = True

    LOW_STOCK_THRESHOLD: int = 10
    MOVEMENT_AUDIT_REQUIRED: bool = False
    DEFAULT_TIMEOUT_SECONDS: Optional[float] = None

    class Config:
        env_file = ".env"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

@lru_cache
def get_settings() -> Settings:
    return Settings()
