"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from typing import Protocol


class IDirectoryBackend(Protocol):
    """Protocol for the key-value store behind the directory."""

    def get(self, identity: str, attribute: str) -> str | None: ...

    def put(self, identity: str, attribute: str, value: str) -> None: ...
