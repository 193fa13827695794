"""
Timestamped marker file written when the relay shuts down.
"""

from datetime import datetime, timezone
from pathlib import Path


def exit_log_name(now: datetime) -> str:
    return f"log_{now.strftime('%Y-%m-%d_%H-%M-%S')}.txt"


def write_exit_log(directory: Path | str, now: datetime | None = None) -> Path:
    """Write `[<iso timestamp>] Application exited` to a new file in `directory`."""
    now = now or datetime.now(timezone.utc)
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / exit_log_name(now)
    path.write_text(f"[{now.isoformat()}] Application exited\n")
    return path
