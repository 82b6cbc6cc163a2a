"""
Custom exceptions for the hybrid key exchange.
"""

from __future__ import annotations


class HybridLinkError(Exception):
    """Base exception for every failure of a handshake attempt."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DirectoryError(HybridLinkError):
    """Directory entry or attribute missing, or the directory is unreachable."""


class KeyFormatError(HybridLinkError):
    """Published key material could not be decoded into a public key."""


class CryptoError(HybridLinkError):
    """Encryption or decryption failed."""


class TransportError(HybridLinkError):
    """Connection refused, short frame read or stream closed mid-frame."""


class HandshakeError(HybridLinkError):
    """Protocol step attempted in the wrong connection state."""

    def __init__(self, message: str, state: str | None = None) -> None:
        super().__init__(message)
        self.state = state
