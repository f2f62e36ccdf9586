# config/settings.py
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Project settings.
    Values are read from environment variables or the .env file.
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite:///./meeting_rooms.db"

    # JWT session credential
    SECRET_KEY: str = "your-super-secret-key-please-change-this-to-a-strong-random-string"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 5
    AUTH_COOKIE_NAME: str = "uid"
    COOKIE_SECURE: bool = False

    # CORS
    CLIENT_URL: Optional[str] = None
    CORS_ORIGINS: List[str] = ["http://127.0.0.1:5500", "http://localhost:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True
    LOG_RETENTION_DAYS: int = 14

    # First administrator (created at startup when both are set)
    ADMIN_NAME: str = "Administrator"
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5000

    def allowed_origins(self) -> List[str]:
        origins = list(self.CORS_ORIGINS)
        if self.CLIENT_URL and self.CLIENT_URL not in origins:
            origins.insert(0, self.CLIENT_URL)
        return origins


settings = Settings()
