"""Runtime settings, read from environment variables (and .env via python-dotenv)."""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://app.openmailbox.org"


def _env_number(name: str, default: float, cast: type) -> float:
    """Parse a numeric env var. Falls back to default (with a warning) on bad input."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        logger.warning("Invalid %s %r; defaulting to %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Non-positive %s %r; defaulting to %s", name, raw, default)
        return default
    return value


@dataclass
class Settings:
    """Where the webmail lives and how patiently we talk to it."""

    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 30.0
    max_messages: int = 100  # POP3 listing window: uids 1..max_messages
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build Settings from environment variables."""
        return cls(
            base_url=os.environ.get("WEBMAIL_BASE_URL", DEFAULT_BASE_URL) or DEFAULT_BASE_URL,
            timeout_seconds=float(_env_number("WEBMAIL_TIMEOUT_SECONDS", 30.0, float)),
            max_messages=int(_env_number("WEBMAIL_MAX_MESSAGES", 100, int)),
            log_level=os.environ.get("LOG_LEVEL", "WARNING").upper(),
        )
