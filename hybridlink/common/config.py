"""
Configuration settings for the hybrid key exchange.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from hybridlink.common.transport import MAX_FRAME_SIZE


def _parse_log_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if isinstance(level, int):
        return level
    logging.getLogger(__name__).warning("Unknown log level %r, using INFO", name)
    return logging.INFO


class Config:
    """Central configuration class for all system settings."""

    def __init__(self) -> None:
        # Service settings
        self.SERVICE_HOST: str = os.getenv("HYBRIDLINK_SERVICE_HOST", "127.0.0.1")
        self.SERVICE_PORT: int = int(os.getenv("HYBRIDLINK_SERVICE_PORT", "7700"))
        self.IDENTITY: str = os.getenv("HYBRIDLINK_IDENTITY", "group.service1")

        # Directory settings
        self.DIRECTORY_HOST: str = os.getenv("HYBRIDLINK_DIRECTORY_HOST", "127.0.0.1")
        self.DIRECTORY_PORT: int = int(os.getenv("HYBRIDLINK_DIRECTORY_PORT", "7389"))
        self.DIRECTORY_URL: str = os.getenv(
            "HYBRIDLINK_DIRECTORY_URL",
            f"http://{self.DIRECTORY_HOST}:{self.DIRECTORY_PORT}",
        )
        self.DIRECTORY_USER: str = os.getenv("HYBRIDLINK_DIRECTORY_USER", "admin")
        self.DIRECTORY_PASSWORD: str | None = os.getenv("HYBRIDLINK_DIRECTORY_PASSWORD")
        data_file = os.getenv("HYBRIDLINK_DIRECTORY_DATA_FILE")
        self.DIRECTORY_DATA_FILE: Path | None = Path(data_file) if data_file else None
        self.KEY_ATTRIBUTE: str = "description"

        # Crypto settings
        self.RSA_KEY_SIZE: int = 2048
        self.RSA_PUBLIC_EXPONENT: int = 65537
        self.RSA_PADDING: str = os.getenv("HYBRIDLINK_RSA_PADDING", "oaep")
        self.SESSION_KEY_SIZE: int = 32  # AES-256

        # Transport settings
        self.MAX_FRAME_SIZE: int = MAX_FRAME_SIZE
        self.IO_TIMEOUT: float = float(os.getenv("HYBRIDLINK_IO_TIMEOUT", "10.0"))
        self.ACCEPT_POLL_INTERVAL: float = 0.5

        # Logging
        self.LOG_LEVEL: int = _parse_log_level(os.getenv("HYBRIDLINK_LOG_LEVEL", "INFO"))
