"""
Symmetric session: AES-GCM under a per-handshake session key.

Wire format of an encrypted payload:
    [12-byte nonce][ciphertext||16-byte tag]
"""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from hybridlink.common.exceptions import CryptoError

NONCE_SIZE = 12
TAG_SIZE = 16
VALID_KEY_SIZES = (16, 24, 32)


class SessionKey:
    """Ephemeral AES key; encrypts at most one message."""

    __slots__ = ("_material", "_used")

    def __init__(self, material: bytes) -> None:
        if len(material) not in VALID_KEY_SIZES:
            msg = (
                f"Invalid session key size {len(material)}; "
                f"expected one of {VALID_KEY_SIZES}"
            )
            raise CryptoError(msg)
        self._material = bytes(material)
        self._used = False

    @classmethod
    def generate(cls, size: int = 32) -> SessionKey:
        if size not in VALID_KEY_SIZES:
            msg = f"Invalid AES key size {size}. Must be 16, 24, or 32 bytes."
            raise CryptoError(msg)
        return cls(os.urandom(size))

    @property
    def material(self) -> bytes:
        return self._material

    @property
    def used(self) -> bool:
        return self._used

    def __len__(self) -> int:
        return len(self._material)

    def __repr__(self) -> str:
        return f"SessionKey(aes-{len(self._material) * 8}, used={self._used})"

    def _consume(self) -> None:
        if self._used:
            msg = "Session key was already used to encrypt a message"
            raise CryptoError(msg)
        self._used = True


def encrypt(key: SessionKey, plaintext: bytes) -> bytes:
    """Encrypt under a fresh random nonce; the key is spent afterwards."""
    key._consume()  # noqa: SLF001
    nonce = os.urandom(NONCE_SIZE)
    return nonce + AESGCM(key.material).encrypt(nonce, plaintext, None)


def decrypt(key: SessionKey, blob: bytes) -> bytes:
    """
    Decrypt and authenticate a payload produced by encrypt().

    Raises:
        CryptoError: wrong key, truncated blob, or corrupted/tampered ciphertext.
    """
    if len(blob) < NONCE_SIZE + TAG_SIZE:
        msg = f"Ciphertext too short: {len(blob)} bytes"
        raise CryptoError(msg)
    nonce, ct_and_tag = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
    try:
        return AESGCM(key.material).decrypt(nonce, ct_and_tag, None)
    except InvalidTag as err:
        msg = "Couldn't decrypt message: authentication failed"
        raise CryptoError(msg) from err
