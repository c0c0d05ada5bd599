from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env", ".env.production"), extra="ignore")

    ENVIRONMENT: str = "LOCAL"

    # Any SQLAlchemy URL; the bare sqlite URL keeps the whole ledger in memory
    DATABASE_URL: str = "sqlite://"

    # Ledger administrator, fixed for the lifetime of a ledger instance
    REGISTRY_OWNER: str = "registry-admin"

    ESDB_CONNECTION_STRING: str | None = None

    JWT_SECRET_KEY: str = "secret_key"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    LOG_LEVEL: str = "INFO"
    CORS_ALLOWED_ORIGINS: str = ""
    PROFILING_ENABLED: bool = False

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins into a clean list."""
        if not self.CORS_ALLOWED_ORIGINS:
            return []
        return [
            o.strip().strip("'\"").rstrip("/")
            for o in self.CORS_ALLOWED_ORIGINS.split(",")
            if o.strip()
        ]


settings = Settings()
