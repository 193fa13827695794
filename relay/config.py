"""
Relay configuration loaded from environment variables.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Polling faster than this only burns the event loop
MIN_POLL_INTERVAL = 0.5


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _get_interval(name: str, default: str) -> float:
    return max(float(os.getenv(name, default)), MIN_POLL_INTERVAL)


class Config:
    """Relay configuration."""

    # WebSocket relay
    HOST: str = os.getenv("RELAY_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("RELAY_PORT", "81"))

    # Status page
    STATUS_HOST: str = os.getenv("STATUS_HOST", "0.0.0.0")
    STATUS_PORT: int = int(os.getenv("STATUS_PORT", "665"))
    STATUS_TITLE: str = os.getenv("STATUS_TITLE", "Matchmaker")

    # Ban store
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", "./data/relay.db"))
    BAN_CHECK_TIMEOUT: float = float(os.getenv("BAN_CHECK_TIMEOUT", "5.0"))
    BAN_CHECK_FAIL_OPEN: bool = _get_bool("BAN_CHECK_FAIL_OPEN", "true")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: Path = Path(os.getenv("LOG_DIR", "./logs"))

    # Notifications
    WEBHOOK_URL: str = os.getenv("WEBHOOK_URL", "")
    NOTIFY_TIMEOUT: float = float(os.getenv("NOTIFY_TIMEOUT", "10.0"))

    # Liveness probes
    PROBE_HOST: str = os.getenv("PROBE_HOST", "0.0.0.0")
    GAME_PORT: int = int(os.getenv("GAME_PORT", "7777"))
    BACKEND_PORT: int = int(os.getenv("BACKEND_PORT", "3551"))
    GAME_POLL_INTERVAL: float = _get_interval("GAME_POLL_INTERVAL", "1.0")
    BACKEND_POLL_INTERVAL: float = _get_interval("BACKEND_POLL_INTERVAL", "1.0")

    # Operator console on stdin
    ADMIN_CONSOLE: bool = _get_bool("ADMIN_CONSOLE", "true")

    @classmethod
    def ensure_directories(cls) -> None:
        """Create necessary directories if they don't exist."""
        cls.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)


config = Config()
settings = config  # Alias for backward compatibility
