import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterator

from shared.config import config  # noqa: F401  re-exported for services


def setup_logging(service_name: str, log_level: str = "INFO") -> logging.Logger:
    """Setup logging configuration for a service"""
    logger = logging.getLogger(service_name)
    logger.setLevel(getattr(logging, log_level.upper()))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(f"%(asctime)s - {service_name} - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe storage"""
    invalid_chars = '<>:"/\\|?*'
    for char in invalid_chars:
        filename = filename.replace(char, "_")
    return filename


def ensure_directory(path: str) -> None:
    """Ensure directory exists, create if not"""
    Path(path).mkdir(parents=True, exist_ok=True)


def remove_file(path: str | Path) -> None:
    """Delete a file if it exists; a missing file is not an error."""
    Path(path).unlink(missing_ok=True)


class Cache:
    """Simple in-memory cache with TTL"""

    def __init__(self):
        self._cache: dict[str, dict[str, Any]] = {}

    def get(self, key: str) -> Any | None:
        if key in self._cache:
            item = self._cache[key]
            if datetime.now() < item["expires"]:
                return item["value"]
            else:
                del self._cache[key]
        return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> None:
        now = datetime.now()
        # Evict entries nobody read before they expired
        for expired in [name for name, item in self._cache.items() if item["expires"] <= now]:
            del self._cache[expired]
        self._cache[key] = {
            "value": value,
            "expires": now + timedelta(seconds=ttl),
        }


@contextmanager
def scoped_file(path: str | Path) -> Iterator[Path]:
    """Yield ``path`` and delete whatever is there on exit, including on errors and cancellation."""
    target = Path(path)
    try:
        yield target
    finally:
        remove_file(target)
