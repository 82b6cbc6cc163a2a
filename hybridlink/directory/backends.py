"""
Key-value backends for the directory key store.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, cast
from urllib.parse import quote, urlparse

import requests
from pydantic import ValidationError

from hybridlink.common.config import Config
from hybridlink.common.exceptions import DirectoryError
from hybridlink.common.interfaces import IDirectoryBackend
from hybridlink.common.models import AttributeResponse, AttributeValue

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_NOT_FOUND = 404
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403


class MemoryBackend:
    """In-process directory; shared by reference, guarded by a lock."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, str]] = {}
        self._lock = threading.Lock()

    def get(self, identity: str, attribute: str) -> str | None:
        with self._lock:
            return self._entries.get(identity, {}).get(attribute)

    def put(self, identity: str, attribute: str, value: str) -> None:
        with self._lock:
            self._entries.setdefault(identity, {})[attribute] = value

    def entries(self) -> dict[str, dict[str, str]]:
        with self._lock:
            return {k: dict(v) for k, v in self._entries.items()}


class FileBackend:
    """Directory persisted as a JSON file: {identity: {attribute: value}}."""

    def __init__(self, file_path: Path) -> None:
        self.file_path = Path(file_path)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, dict[str, str]]:
        try:
            with self.file_path.open() as f:
                return cast("dict[str, dict[str, str]]", json.load(f))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as err:
            msg = f"Couldn't read directory file {self.file_path}: {err}"
            raise DirectoryError(msg) from err

    def _save(self, entries: dict[str, dict[str, str]]) -> None:
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.file_path.parent, prefix=f".{self.file_path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(entries, f, indent=2, sort_keys=True)
                os.replace(tmp_path, self.file_path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as err:
            msg = f"Couldn't write directory file {self.file_path}: {err}"
            raise DirectoryError(msg) from err

    def get(self, identity: str, attribute: str) -> str | None:
        with self._lock:
            return self._load().get(identity, {}).get(attribute)

    def put(self, identity: str, attribute: str, value: str) -> None:
        with self._lock:
            entries = self._load()
            entries.setdefault(identity, {})[attribute] = value
            self._save(entries)


class HttpBackend:
    """Client of the directory service (see hybridlink.directory.server)."""

    def __init__(
        self,
        base_url: str,
        user: str | None = None,
        password: str | None = None,
        timeout: float | None = None,
    ) -> None:
        config = Config()
        self.base_url = base_url.rstrip("/")
        self.user = user or config.DIRECTORY_USER
        self.password = password if password is not None else config.DIRECTORY_PASSWORD
        self.timeout = timeout if timeout is not None else config.IO_TIMEOUT

    def _url(self, identity: str, attribute: str) -> str:
        return (
            f"{self.base_url}/entries/{quote(identity, safe='')}/"
            f"{quote(attribute, safe='')}"
        )

    def get(self, identity: str, attribute: str) -> str | None:
        try:
            r = requests.get(self._url(identity, attribute), timeout=self.timeout)
        except requests.RequestException as err:
            msg = f"Couldn't reach directory at {self.base_url}: {err}"
            raise DirectoryError(msg) from err

        if r.status_code == HTTP_NOT_FOUND:
            return None
        if r.status_code != HTTP_OK:
            msg = f"Directory lookup of {identity!r} failed with HTTP {r.status_code}"
            raise DirectoryError(msg)
        try:
            return AttributeResponse.model_validate(r.json()).value
        except (ValueError, ValidationError) as err:
            msg = f"Malformed directory reply for {identity!r} from {self.base_url}"
            raise DirectoryError(msg) from err

    def put(self, identity: str, attribute: str, value: str) -> None:
        kwargs: dict[str, Any] = {
            "json": AttributeValue(value=value).model_dump(),
            "timeout": self.timeout,
        }
        if self.password:
            kwargs["auth"] = (self.user, self.password)
        try:
            r = requests.put(self._url(identity, attribute), **kwargs)
        except requests.RequestException as err:
            msg = f"Couldn't reach directory at {self.base_url}: {err}"
            raise DirectoryError(msg) from err

        if r.status_code in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
            msg = f"Not authorized to store {identity!r} (HTTP {r.status_code})"
            raise DirectoryError(msg)
        if r.status_code != HTTP_OK:
            msg = f"Storing {identity!r} failed with HTTP {r.status_code}"
            raise DirectoryError(msg)


def open_backend(
    url: str,
    user: str | None = None,
    password: str | None = None,
    timeout: float | None = None,
) -> IDirectoryBackend:
    """
    Build a backend from a directory reference.

    Accepts ``memory:``, ``file:///path/to/directory.json``,
    ``http(s)://host:port`` or a bare ``host:port``.
    """
    if url in ("memory", "memory:"):
        return MemoryBackend()

    parsed = urlparse(url)
    if parsed.scheme == "file":
        return FileBackend(Path(parsed.path))
    if parsed.scheme in ("http", "https"):
        return HttpBackend(url, user=user, password=password, timeout=timeout)
    if "://" not in url:
        return HttpBackend(f"http://{url}", user=user, password=password, timeout=timeout)

    msg = f"Unsupported directory reference: {url}"
    raise DirectoryError(msg)
