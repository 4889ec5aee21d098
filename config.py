"""
Frame Enhancer Configuration

Settings come from the environment, optionally via a .env file next to the
working directory.

    ENHANCER_HOST=0.0.0.0
    ENHANCER_PORT=3000
    ENHANCER_SERVER_URL=http://localhost:3000
    ENHANCER_TIMEOUT=10
    ENHANCER_WORKERS=2
    ENHANCER_PROFILE=auto
    ENHANCER_GAMMA=1.0
    ENHANCER_LOG_FILE=0
    CAMERA_ID=0
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EnhancerConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    server_url: str = "http://localhost:3000"
    request_timeout: float = 10.0
    background_workers: int = 2
    default_profile: str = "auto"
    finishing_gamma: Optional[float] = None
    log_file: bool = False
    camera_id: int = 0

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "EnhancerConfig":
        """Read settings from the environment (and .env unless disabled)."""
        if dotenv:
            load_dotenv()
        defaults = cls()
        return cls(
            host=os.getenv("ENHANCER_HOST", defaults.host),
            port=_env_int("ENHANCER_PORT", defaults.port),
            server_url=os.getenv("ENHANCER_SERVER_URL", defaults.server_url).rstrip("/"),
            request_timeout=_env_float("ENHANCER_TIMEOUT", defaults.request_timeout),
            background_workers=max(1, _env_int("ENHANCER_WORKERS", defaults.background_workers)),
            default_profile=os.getenv("ENHANCER_PROFILE", defaults.default_profile),
            finishing_gamma=_env_float("ENHANCER_GAMMA", defaults.finishing_gamma),
            log_file=_env_bool("ENHANCER_LOG_FILE", defaults.log_file),
            camera_id=_env_int("CAMERA_ID", defaults.camera_id),
        )
