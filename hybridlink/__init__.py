# Hybrid RSA/AES-GCM key exchange

from hybridlink.client.client import SecureClient
from hybridlink.common.exceptions import (
    CryptoError,
    DirectoryError,
    HandshakeError,
    HybridLinkError,
    KeyFormatError,
    TransportError,
)
from hybridlink.directory import DirectoryKeyStore, open_backend
from hybridlink.server.core import SecureService

__all__ = [
    "CryptoError",
    "DirectoryError",
    "DirectoryKeyStore",
    "HandshakeError",
    "HybridLinkError",
    "KeyFormatError",
    "SecureClient",
    "SecureService",
    "TransportError",
    "open_backend",
]
