# Directory key store
from hybridlink.directory.backends import (
    FileBackend,
    HttpBackend,
    MemoryBackend,
    open_backend,
)
from hybridlink.directory.store import DirectoryKeyStore

__all__ = [
    "DirectoryKeyStore",
    "FileBackend",
    "HttpBackend",
    "MemoryBackend",
    "open_backend",
]
