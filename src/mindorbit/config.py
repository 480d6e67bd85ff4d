"""Configuration management for MindOrbit."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MINDORBIT_",
        extra="ignore",
        populate_by_name=True,
    )

    # Language model (any OpenAI-compatible endpoint)
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = "gpt-4o-mini"
    openai_base_url: Optional[str] = None
    request_timeout: float = 30.0

    # Storage
    data_dir: Path = Field(default_factory=lambda: Path.cwd() / ".mindorbit")

    # Server
    host: str = "127.0.0.1"
    port: int = 8421
    allowed_origins: list[str] = Field(default_factory=list)

    # Chat context selection
    context_limit: int = Field(default=15, ge=0, le=15)
    keyword_filter: bool = False

    # Graph layout
    layout_width: float = 800.0
    layout_height: float = 600.0
    layout_tick_interval: float = 1 / 60

    @property
    def has_api_key(self) -> bool:
        return bool(self.openai_api_key and self.openai_api_key.strip())

    @property
    def items_path(self) -> Path:
        return self.data_dir / "items.json"

    @property
    def inbox_path(self) -> Path:
        return self.data_dir / "Inbox"

    @property
    def failed_path(self) -> Path:
        return self.inbox_path / "failed"

    @property
    def index_path(self) -> Path:
        return self.data_dir / "INDEX.md"

    @property
    def error_log_path(self) -> Path:
        return self.data_dir / "error.log"

    def get_allowed_origins(self) -> set[Optional[str]]:
        """Origins allowed to make state-changing dashboard requests."""
        origins: set[Optional[str]] = {
            f"http://{self.host}:{self.port}",
            f"http://localhost:{self.port}",
            f"http://127.0.0.1:{self.port}",
        }
        origins.update(self.allowed_origins)
        return origins


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
