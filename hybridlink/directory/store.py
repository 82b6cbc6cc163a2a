"""
Directory key store: publish and look up RSA public keys by identity.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hybridlink.common.config import Config
from hybridlink.common.crypto import public_key_from_hex, public_key_to_hex
from hybridlink.common.exceptions import DirectoryError
from hybridlink.common.models import DirectoryEntry

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

    from hybridlink.common.interfaces import IDirectoryBackend

logger = logging.getLogger(__name__)


class DirectoryKeyStore:
    """Stores hex-encoded public keys under an attribute of a named entry."""

    def __init__(
        self, backend: IDirectoryBackend, attribute: str | None = None
    ) -> None:
        self.backend = backend
        self.attribute = attribute or Config().KEY_ATTRIBUTE

    def publish(self, identity: str, public_key: RSAPublicKey) -> DirectoryEntry:
        """Store the key for ``identity``, replacing any previous value."""
        entry = DirectoryEntry(
            identity=identity, public_key_hex=public_key_to_hex(public_key)
        )
        logger.info("Storing public key for %s ...", identity)
        self.backend.put(entry.identity, self.attribute, entry.public_key_hex)
        return entry

    def lookup_hex(self, identity: str) -> str:
        value = self.backend.get(identity, self.attribute)
        if value is None:
            msg = f"Couldn't get the public key: no {self.attribute!r} for {identity!r}"
            raise DirectoryError(msg)
        return value

    def lookup(self, identity: str) -> RSAPublicKey:
        """
        Fetch and rebuild the public key published for ``identity``.

        Raises:
            DirectoryError: entry or attribute missing, directory unreachable.
            KeyFormatError: the stored value is not a hex-encoded RSA key.
        """
        logger.info("Receiving public key for %s ...", identity)
        value = self.lookup_hex(identity)
        logger.info("Parsing public key ...")
        return public_key_from_hex(value)
