"""Application settings and configuration"""

from dataclasses import dataclass
from typing import Dict, Optional

from pydantic_settings import BaseSettings

from app.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Play Count Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    USER_AGENT: str = "PlayCountService/1.0"

    # HTTP server
    SERVER_HOST: str = "localhost"
    SERVER_PORT: int = 38080

    # Repository holding the daily history documents
    GH_USER: Optional[str] = None
    GH_REPO: Optional[str] = None
    GH_PAT: Optional[str] = None
    GH_DATA_PATH: str = "data"

    # Snapshot gist (batch mode)
    GIST_ID: Optional[str] = None
    GIST_TOKEN: Optional[str] = None  # Falls back to GH_PAT

    # Backend selection
    DOCUMENT_STORE_BACKEND: str = "github"  # github | filesystem
    LOCAL_DATA_DIR: str = "data"
    SNAPSHOT_STORE_BACKEND: str = "gist"  # gist | filesystem
    LOCAL_SNAPSHOT_DIR: str = "snapshots"

    # Windowing
    DAYS: int = 1
    # "last-30-days" has historically served a 3-day window
    PLAY_COUNT_PRESETS: Dict[str, int] = {"last-30-days": 3}
    FETCH_CONCURRENCY: int = 0  # 0 = one worker per day in the window
    WINDOW_TIMEOUT_SECONDS: float = 60.0  # 0 disables the timeout

    # Publishing
    STRICT_PUBLISH: bool = False

    # GitHub client resilience controls
    GITHUB_TIMEOUT_SECONDS: float = 30.0
    GITHUB_MAX_RETRIES: int = 3
    GITHUB_BACKOFF_BASE_SECONDS: float = 1.0
    GITHUB_BACKOFF_MAX_SECONDS: float = 16.0
    GITHUB_RATE_LIMIT_BUFFER_SECONDS: int = 2

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env


@dataclass(frozen=True)
class GitHubRepoConfig:
    """Location of the history documents inside a GitHub repository."""

    user: str
    repo: str
    token: str
    data_path: str


@dataclass(frozen=True)
class GistConfig:
    """Target gist for published snapshots."""

    gist_id: str
    token: str


def _require(values: Dict[str, Optional[str]]) -> None:
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ConfigurationError(missing)


def github_repo_config(config: Settings) -> GitHubRepoConfig:
    """Build the repository config, failing fast when credentials are absent."""
    _require({"GH_USER": config.GH_USER, "GH_REPO": config.GH_REPO, "GH_PAT": config.GH_PAT})
    return GitHubRepoConfig(
        user=config.GH_USER,
        repo=config.GH_REPO,
        token=config.GH_PAT,
        data_path=config.GH_DATA_PATH.strip("/"),
    )


def gist_config(config: Settings) -> GistConfig:
    token = config.GIST_TOKEN or config.GH_PAT
    _require({"GIST_ID": config.GIST_ID, "GIST_TOKEN or GH_PAT": token})
    return GistConfig(gist_id=config.GIST_ID, token=token)


def window_length(config: Settings, days: Optional[int] = None) -> int:
    """Window length from an explicit override, else DAYS."""
    name, value = ("days", days) if days is not None else ("DAYS", config.DAYS)
    if value < 1:
        raise ConfigurationError(invalid={name: f"must be a positive day count, got {value}"})
    return value


def preset_length(config: Settings, preset: Optional[str]) -> Optional[int]:
    """Window length for a query preset, or None when the preset is unknown"""
    if not preset or preset not in config.PLAY_COUNT_PRESETS:
        return None
    value = config.PLAY_COUNT_PRESETS[preset]
    if value < 1:
        raise ConfigurationError(
            invalid={f"PLAY_COUNT_PRESETS[{preset}]": f"must be a positive day count, got {value}"}
        )
    return value


settings = Settings()
