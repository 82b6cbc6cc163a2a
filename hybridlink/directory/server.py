"""
Directory service using FastAPI.

Reads are anonymous; writes need HTTP Basic credentials when a password is
configured.
"""

from __future__ import annotations

import logging
import secrets
import time
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from hybridlink.common.config import Config
from hybridlink.common.exceptions import DirectoryError
from hybridlink.common.interfaces import IDirectoryBackend
from hybridlink.common.logging_utils import setup_logger
from hybridlink.common.models import AttributeResponse, AttributeValue

from .backends import FileBackend, MemoryBackend

security = HTTPBasic(auto_error=False)


class DirectoryServer:
    """Serves the entries of a backend over HTTP."""

    def __init__(
        self,
        backend: IDirectoryBackend | None = None,
        user: str | None = None,
        password: str | None = None,
        log_level: int | None = None,
        config: Config | None = None,
    ) -> None:
        config = config or Config()
        self.logger = logging.getLogger(__name__)
        setup_logger(self.logger, log_level or config.LOG_LEVEL)
        if backend is None:
            if config.DIRECTORY_DATA_FILE:
                backend = FileBackend(config.DIRECTORY_DATA_FILE)
            else:
                backend = MemoryBackend()
        self.backend = backend
        self.user = user or config.DIRECTORY_USER
        self.password = password if password is not None else config.DIRECTORY_PASSWORD
        self.app = FastAPI(title="hybridlink directory")
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Setup API routes."""

        @self.app.get("/health")
        def health() -> dict[str, Any]:
            return {"status": "ok", "timestamp": int(time.time())}

        self.app.get("/entries/{identity}/{attribute}")(self.get_attribute)
        self.app.put("/entries/{identity}/{attribute}")(self.put_attribute)

    def _authorize(self, credentials: HTTPBasicCredentials | None) -> None:
        if not self.password:
            return
        if credentials is None:
            raise HTTPException(
                401, "authentication required", {"WWW-Authenticate": "Basic"}
            )
        user_ok = secrets.compare_digest(credentials.username, self.user)
        password_ok = secrets.compare_digest(credentials.password, self.password)
        if not (user_ok and password_ok):
            raise HTTPException(403, "invalid credentials")

    def get_attribute(self, identity: str, attribute: str) -> AttributeResponse:
        """Handle GET /entries/{identity}/{attribute}."""
        try:
            value = self.backend.get(identity, attribute)
        except DirectoryError as err:
            self.logger.error("Lookup of %s failed: %s", identity, err)
            raise HTTPException(503, "directory unavailable") from err
        if value is None:
            raise HTTPException(404, "no such entry or attribute")
        return AttributeResponse(identity=identity, attribute=attribute, value=value)

    def put_attribute(
        self,
        identity: str,
        attribute: str,
        body: AttributeValue,
        credentials: HTTPBasicCredentials | None = Depends(security),  # noqa: B008
    ) -> AttributeResponse:
        """Handle PUT /entries/{identity}/{attribute} (replace semantics)."""
        self._authorize(credentials)
        try:
            self.backend.put(identity, attribute, body.value)
        except DirectoryError as err:
            self.logger.error("Storing %s failed: %s", identity, err)
            raise HTTPException(503, "directory unavailable") from err
        self.logger.info("Stored %s of %s", attribute, identity)
        return AttributeResponse(identity=identity, attribute=attribute, value=body.value)


def start_directory(
    host: str | None = None,
    port: int | None = None,
    config: Config | None = None,
) -> None:
    """Start the directory service."""
    if config is None:
        config = Config()
    server = DirectoryServer(config=config)
    uvicorn.run(
        server.app,
        host=host or config.DIRECTORY_HOST,
        port=port or config.DIRECTORY_PORT,
    )
