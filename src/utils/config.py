"""Configuration loading and validation for tubesource."""

import logging
import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from rich.logging import RichHandler

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_BRIDGE_BASE_URL = "http://localhost:8080"
DEFAULT_FORMAT_POLICY = "h264_mp4"

DEFAULT_FORMATS_TIMEOUT = 20.0
DEFAULT_LIST_TIMEOUT = 10.0
DEFAULT_PREFLIGHT_TIMEOUT = 4.0

# Upper bounds accepted for timeout values
MAX_TIMEOUT_MS = 300_000
MAX_TIMEOUT_SECONDS = 300.0


def env_bool(name: str, default: bool = False) -> bool:
    """Read a boolean flag. Accepts 1/true/yes; blank or unset means default."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes")


def env_int(name: str, default: int, minimum: int = 1) -> int:
    """Read an integer; anything unparsable or below `minimum` gives default."""
    value = os.getenv(name)
    try:
        number = int(value) if value is not None else None
    except ValueError:
        number = None
    if number is None or number < minimum:
        return default
    return number


def parse_timeout(raw: Optional[str], fallback: float) -> float:
    """Parse a timeout given as milliseconds or seconds into seconds.

    Whole numbers in 1..300000 are milliseconds. Otherwise a decimal in
    (0, 300] is taken as seconds. Anything else returns `fallback`.
    """
    if raw is None or not raw.strip():
        return fallback
    text = raw.strip()

    try:
        ms = int(text)
    except ValueError:
        ms = None
    if ms is not None and 0 < ms <= MAX_TIMEOUT_MS:
        return ms / 1000.0

    try:
        seconds = float(text)
    except ValueError:
        return fallback
    if 0 < seconds <= MAX_TIMEOUT_SECONDS:
        return seconds
    return fallback


def env_timeout(specific: str, general: str, fallback: float) -> float:
    """Resolve a timeout: specific var, then general var, then fallback."""
    base = parse_timeout(os.getenv(general), fallback)
    return parse_timeout(os.getenv(specific), base)


def load_config() -> dict:
    """Load configuration from environment variables."""
    blocked = os.getenv("BLOCKED_FORMAT_IDS", "")

    config = {
        # Upstream bridge
        "bridge_base_url": (
            os.getenv("BRIDGE_BASE_URL") or DEFAULT_BRIDGE_BASE_URL
        ).rstrip("/"),
        "format_policy": os.getenv("FORMAT_POLICY") or DEFAULT_FORMAT_POLICY,
        "use_proxy_playback": env_bool("USE_PROXY_PLAYBACK", True),
        # Candidate selection
        "progressive_only": env_bool("PROGRESSIVE_ONLY", True),
        "blocked_format_ids": [fid.strip() for fid in blocked.split(",") if fid.strip()],
        "prefer_baseline_stable": env_bool("PREFER_BASELINE_STABLE", True),
        # Policy candidate placement
        "include_policy_candidate": env_bool("INCLUDE_POLICY_CANDIDATE", True),
        "policy_first": env_bool("POLICY_FIRST", False),
        "policy_on_fetch_error": env_bool("POLICY_ON_FORMATS_ERROR", True),
        # Preflight
        "preflight_enabled": not env_bool("DISABLE_PREFLIGHT", False),
        "preflight_max_candidates": max(1, env_int("PREFLIGHT_MAX", 5)),
        "preflight_probe_bytes": env_int("PREFLIGHT_PROBE_BYTES", 65536, minimum=0),
        # Timeouts (seconds)
        "fetch_timeout": env_timeout(
            "FORMATS_TIMEOUT_MS", "HTTP_TIMEOUT_MS", DEFAULT_FORMATS_TIMEOUT
        ),
        "list_timeout": env_timeout(
            "LIST_TIMEOUT_MS", "HTTP_TIMEOUT_MS", DEFAULT_LIST_TIMEOUT
        ),
        "preflight_timeout": env_timeout(
            "PREFLIGHT_TIMEOUT_MS", "HTTP_TIMEOUT_MS", DEFAULT_PREFLIGHT_TIMEOUT
        ),
        # Logging
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": env_bool("LOG_JSON", False),
        # API server
        "api_host": os.getenv("API_HOST") or "0.0.0.0",
        "api_port": env_int("API_PORT", 8000),
    }

    return config


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of errors."""
    errors = []

    base_url = config.get("bridge_base_url") or ""
    parsed = urlparse(base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        errors.append(f"BRIDGE_BASE_URL must be an http(s) URL, got '{base_url}'")
    else:
        try:
            parsed.port
        except ValueError:
            errors.append(f"BRIDGE_BASE_URL has an invalid port, got '{base_url}'")

    if not str(config.get("format_policy") or "").strip():
        errors.append("FORMAT_POLICY must not be empty")

    if config.get("preflight_max_candidates", 1) < 1:
        errors.append("PREFLIGHT_MAX must be at least 1")

    if config.get("preflight_probe_bytes", 0) < 0:
        errors.append("PREFLIGHT_PROBE_BYTES must not be negative")

    return errors


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging configuration with Rich for terminal output."""
    # Clear any existing handlers
    logging.root.handlers.clear()

    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False,  # Disable markup to avoid conflicts
    )

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        handlers=[rich_handler],
        format="%(message)s",
    )

    # Suppress noisy third-party loggers
    for logger_name in ("httpx", "httpcore"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)
