from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///fleetbook.db"
    db_echo: bool = False

    # CORS / Socket.IO origin
    frontend_url: str = "http://localhost:5173"

    # Auth (structure only)
    secret_key: str = "change-me-in-production"
    # Header carrying the signed-in profile id, set by the upstream auth proxy.
    session_header: str = "X-User-Id"

    # Live updates
    admin_room: str = "admins"
    # Seconds a "jump to date" highlight stays on the grid.
    highlight_seconds: float = 3.0

    # Logging
    log_level: str = "INFO"

    # Flask environment
    flask_env: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    def is_dev(self) -> bool:
        """True when running in development mode."""
        return (self.flask_env or "").strip().lower() == "development"

    @field_validator("highlight_seconds")
    @classmethod
    def validate_highlight_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("highlight_seconds must be positive")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: Optional[str]) -> str:
        return (value or "INFO").strip().upper()


settings = Settings()
