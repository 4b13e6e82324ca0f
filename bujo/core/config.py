from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./bujo.db"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated origins whose requests get CORS headers reflected.
    CORS_ORIGINS: str = "https://mail.google.com"

    BACKUP_DIR: str = "./backups"

    # Superseded versions older than this many days may be archived.
    ARCHIVE_RETENTION_DAYS: int = 90

    SEARCH_DEFAULT_LIMIT: int = 50

    # Summary models and their manifest.json live here.
    MODELS_DIR: str = "./models"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
