"""
Configuration and Logging Setup

Provides centralized configuration and logging for the detox service.
Reads settings from environment variables (and a local .env file).

Usage:
    from feed_detox.config import DetoxConfig, configure_logging

    # Configure at application startup
    configure_logging()
    config = DetoxConfig.from_env()
"""

import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Default configuration
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s: %(message)s"

# Valid log levels
VALID_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class DetoxConfig:
    """
    Service-level configuration.

    Timeouts and the per-video cap are in milliseconds, matching the
    units Playwright expects.
    """

    host: str = "0.0.0.0"
    port: int = 3000

    # YouTube Data API key used by the content resolver
    youtube_api_key: Optional[str] = None

    # Session budget used when the request omits a duration
    default_duration_seconds: int = 60

    # Longest time spent on a single video
    watch_cap_ms: int = 30000

    # Navigation timeouts
    home_timeout_ms: int = 30000
    video_timeout_ms: int = 60000

    # Mirror pushed events to the server terminal
    echo_events: bool = True

    @classmethod
    def from_env(cls) -> "DetoxConfig":
        """
        Create DetoxConfig from environment variables.

        Environment variables:
            HOST: bind address (default: 0.0.0.0)
            PORT: int (default: 3000)
            YOUTUBE_API_KEY: YouTube Data API v3 key
            DEFAULT_DURATION_SECONDS: int (default: 60)
            WATCH_CAP_MS: int (default: 30000)
            HOME_TIMEOUT_MS: int (default: 30000)
            VIDEO_TIMEOUT_MS: int (default: 60000)
            ECHO_EVENTS: true/false (default: true)
        """
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            youtube_api_key=os.getenv("YOUTUBE_API_KEY") or None,
            default_duration_seconds=int(os.getenv("DEFAULT_DURATION_SECONDS", "60")),
            watch_cap_ms=int(os.getenv("WATCH_CAP_MS", "30000")),
            home_timeout_ms=int(os.getenv("HOME_TIMEOUT_MS", "30000")),
            video_timeout_ms=int(os.getenv("VIDEO_TIMEOUT_MS", "60000")),
            echo_events=_env_bool("ECHO_EVENTS", "true"),
        )


def get_log_level() -> int:
    """
    Get the log level from LOG_LEVEL environment variable.

    Returns:
        Logging level constant (e.g., logging.INFO)

    Supported values:
        DEBUG, INFO, WARNING, ERROR, CRITICAL
    """
    level_str = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()

    if level_str not in VALID_LEVELS:
        # Warn about invalid level and use default
        print(
            f"Warning: Invalid LOG_LEVEL '{level_str}'. "
            f"Valid values: {', '.join(VALID_LEVELS.keys())}. "
            f"Using {DEFAULT_LOG_LEVEL}.",
            file=sys.stderr,
        )
        return VALID_LEVELS[DEFAULT_LOG_LEVEL]

    return VALID_LEVELS[level_str]


def configure_logging(
    level: Optional[int] = None,
    verbose: bool = False,
) -> None:
    """
    Configure logging for the detox service.

    Should be called once at startup, before the server or a run begins.

    Args:
        level: Override log level (default: from LOG_LEVEL env var)
        verbose: Use detailed format with timestamps (default: simple format)
    """
    if level is None:
        level = get_log_level()

    log_format = LOG_FORMAT if verbose else LOG_FORMAT_SIMPLE

    logging.basicConfig(
        level=level,
        format=log_format,
        stream=sys.stderr,
        force=True,
    )

    logging.getLogger("feed_detox").setLevel(level)

    # Quiet noisy third-party loggers in non-debug mode
    if level > logging.DEBUG:
        logging.getLogger("playwright").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
