# src/atlas/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",            # auto-load .env (optional; process env wins)
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    APP_NAME: str = "zone-atlas"
    LOG_LEVEL: str = "INFO"

    # Database (DATABASE_URL wins; otherwise built from the DB_* parts)
    DATABASE_URL: str | None = None
    DB_USER: str = "atlas"
    DB_PASSWORD: str = ""
    DB_HOST: str = "127.0.0.1"
    DB_PORT: str = "5432"
    DB_NAME: str = "atlas"
    DB_DRIVER: str = "postgresql+asyncpg"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_TIMEOUT: int = 30               # connect / pool wait, seconds
    DB_OPERATION_TIMEOUT: float = 10.0  # upper bound for one store operation, seconds

    # Identity boundary (tokens are minted by the external identity provider)
    JWT_SECRET: str = "change-this-secret-in-dev-only"
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    # Authorization
    ADMIN_ROLES: list[str] = ["admin"]
    ORPHAN_OWNER_ID: str = "system"

    # Catalog
    CATALOG_DEFAULT_LIMIT: int = 50
    CATALOG_MAX_LIMIT: int = 200
    CATALOG_SCAN_BATCH: int = 200

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"{self.DB_DRIVER}://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


settings = Settings()
