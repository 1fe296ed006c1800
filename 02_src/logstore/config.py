"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "agent_logs.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"
DEFAULT_MIRROR_DIR = LOGS_DIR / "mirror"
DEFAULT_TIMEZONE = "America/Los_Angeles"


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_log_dir(env_value: PathLike | None = None) -> Path:
    """Resolve the debug mirror directory (LOG_DIR) to an absolute path."""
    if not env_value:
        return DEFAULT_MIRROR_DIR

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_log_file(env_value: PathLike | None = None) -> Path:
    """Resolve the service's own log file (LOG_FILE) to an absolute path."""
    if not env_value:
        return DEFAULT_LOG_PATH

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    return int(value)


@dataclass
class Settings:
    """Runtime settings for the log store and its debug mirror."""

    db_path: PathLike = DEFAULT_DB_PATH
    log_dir: Path = DEFAULT_MIRROR_DIR
    mirror_enabled: bool = False
    mirror_prefix: str = "amp"
    timezone: str = DEFAULT_TIMEZONE
    refresh_url: str | None = None
    batch_size: int = 5
    flush_delay: float = 1.0  # seconds
    lock_retries: int = 5
    log_level: str = "INFO"
    log_file: Path = DEFAULT_LOG_PATH


def load_settings(env_file: PathLike | None = None) -> Settings:
    """Build Settings from the environment, reading .env first if present."""
    load_dotenv(env_file or PROJECT_ROOT / ".env")

    return Settings(
        db_path=resolve_db_path(os.getenv("DATABASE_URL")),
        log_dir=resolve_log_dir(os.getenv("LOG_DIR")),
        mirror_enabled=_env_bool("LOG_MIRROR_ENABLED", False),
        mirror_prefix=os.getenv("LOG_MIRROR_PREFIX", "amp"),
        timezone=os.getenv("LOG_TIMEZONE", DEFAULT_TIMEZONE),
        refresh_url=os.getenv("REFRESH_WEBHOOK_URL") or None,
        batch_size=_env_int("LOG_BATCH_SIZE", 5),
        flush_delay=_env_int("LOG_FLUSH_DELAY_MS", 1000) / 1000,
        lock_retries=_env_int("LOG_LOCK_RETRIES", 5),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=resolve_log_file(os.getenv("LOG_FILE")),
    )
