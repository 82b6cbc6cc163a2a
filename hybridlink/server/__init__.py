"""
Entry point for the secure service.
"""

from __future__ import annotations

from hybridlink.common.config import Config
from hybridlink.directory import DirectoryKeyStore, open_backend

from .core import SecureService


def start_service(
    directory_url: str | None = None,
    port: int | None = None,
    config: Config | None = None,
    **kwargs,
) -> SecureService:
    """Create the service, publish its key and serve until interrupted."""
    if config is None:
        config = Config()
    backend = open_backend(directory_url or config.DIRECTORY_URL, timeout=config.IO_TIMEOUT)
    service = SecureService(DirectoryKeyStore(backend), port=port, config=config, **kwargs)
    service.start()
    try:
        service.serve_forever()
    except KeyboardInterrupt:
        service.logger.info("Terminated.")
    finally:
        service.stop()
    return service


__all__ = ["SecureService", "start_service"]
