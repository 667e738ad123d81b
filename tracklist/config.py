"""
Runtime configuration and logging setup.

Values come from the environment (optionally a .env file next to the app).
"""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

# Production hosts ship the Chromium build inside the install directory
if os.getenv("APP_ENV") == "production":
    os.environ.setdefault("PLAYWRIGHT_BROWSERS_PATH", "0")

PLAYLIST_BASE_URL = "https://open.spotify.com/playlist/"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


@dataclass(frozen=True)
class ExtractionSettings:
    """Tunables for one extraction run."""

    max_passes: int = 15
    stagnation_threshold: int = 2
    initial_wait_seconds: float = 45.0
    settle_delay_seconds: float = 2.0
    scroll_delta: int = 1000
    navigation_timeout_seconds: float = 30.0
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    viewport_width: int = 1280
    viewport_height: int = 800

    @classmethod
    def from_env(cls) -> "ExtractionSettings":
        return cls(
            max_passes=_env_int("TRACKLIST_MAX_PASSES", cls.max_passes),
            stagnation_threshold=_env_int("TRACKLIST_STAGNATION_THRESHOLD", cls.stagnation_threshold),
            initial_wait_seconds=_env_float("TRACKLIST_INITIAL_WAIT_SECONDS", cls.initial_wait_seconds),
            settle_delay_seconds=_env_float("TRACKLIST_SETTLE_DELAY_SECONDS", cls.settle_delay_seconds),
            scroll_delta=_env_int("TRACKLIST_SCROLL_DELTA", cls.scroll_delta),
            navigation_timeout_seconds=_env_float(
                "TRACKLIST_NAVIGATION_TIMEOUT_SECONDS", cls.navigation_timeout_seconds
            ),
            headless=_env_bool("TRACKLIST_HEADLESS", cls.headless),
            user_agent=os.getenv("TRACKLIST_USER_AGENT") or DEFAULT_USER_AGENT,
        )

    def playlist_url(self, playlist_id: str) -> str:
        return f"{PLAYLIST_BASE_URL}{playlist_id}"


def setup_logging(level: str | int = LOG_LEVEL) -> logging.Logger:
    """Configure the root handler and return the app logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    logger = logging.getLogger("tracklist")
    logger.setLevel(level)

    # Playwright's asyncio driver is chatty at DEBUG
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"tracklist.{name}")
