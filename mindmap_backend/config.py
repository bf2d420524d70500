"""Backend settings, read from MINDMAP_* environment variables or a .env file."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""
    model_config = SettingsConfigDict(env_prefix="MINDMAP_", env_file=".env", extra="ignore")

    # Persistence
    state_file: Path = Path.home() / ".mindmap-tool" / "state.json"
    autosave_delay: float = 0.3  # Seconds without edits before a save

    # Editing
    max_history: int = 50

    # API server
    host: str = "127.0.0.1"
    port: int = 8765
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    log_level: str = "INFO"


settings = Settings()
