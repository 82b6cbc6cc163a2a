"""
Asymmetric identity: RSA keypair generation and session-key wrapping.
"""

from __future__ import annotations

import binascii
import logging

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from hybridlink.common.exceptions import CryptoError, KeyFormatError

logger = logging.getLogger(__name__)

OAEP = "oaep"
PKCS1V15 = "pkcs1v15"
PADDINGS = (OAEP, PKCS1V15)


def _padding(name: str) -> padding.AsymmetricPadding:
    if name == OAEP:
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA256()),
            algorithm=hashes.SHA256(),
            label=None,
        )
    if name == PKCS1V15:
        return padding.PKCS1v15()
    msg = f"unknown RSA padding: {name!r}"
    raise CryptoError(msg)


def max_secret_size(public_key: rsa.RSAPublicKey, padding_name: str = OAEP) -> int:
    """Largest plaintext the given key and padding can encrypt."""
    key_bytes = (public_key.key_size + 7) // 8
    if padding_name == OAEP:
        digest_size = hashes.SHA256.digest_size
        return key_bytes - 2 * digest_size - 2
    return key_bytes - 11


class AsymmetricIdentity:
    """RSA keypair owned by a service; only the public half ever leaves it."""

    def __init__(self, private_key: rsa.RSAPrivateKey) -> None:
        self._private_key = private_key
        self.public_key: rsa.RSAPublicKey = private_key.public_key()

    @property
    def private_key(self) -> rsa.RSAPrivateKey:
        return self._private_key

    def __repr__(self) -> str:
        return f"AsymmetricIdentity(rsa-{self.public_key.key_size})"

    @classmethod
    def generate(
        cls, key_size: int = 2048, public_exponent: int = 65537
    ) -> AsymmetricIdentity:
        """Generate a fresh RSA keypair."""
        logger.info("Generating key pair ...")
        try:
            private_key = rsa.generate_private_key(
                public_exponent=public_exponent, key_size=key_size
            )
        except ValueError as err:
            msg = f"Keysize is not supported: {err}"
            raise CryptoError(msg) from err
        return cls(private_key)

    def public_key_der(self) -> bytes:
        return encode_public_key(self.public_key)

    def decrypt(self, ciphertext: bytes, padding_name: str = OAEP) -> bytes:
        return decrypt_with_private_key(self._private_key, ciphertext, padding_name)


def encode_public_key(public_key: rsa.RSAPublicKey) -> bytes:
    """DER SubjectPublicKeyInfo (X.509) encoding of a public key."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def public_key_to_hex(public_key: rsa.RSAPublicKey) -> str:
    return encode_public_key(public_key).hex().upper()


def public_key_from_hex(value: str) -> rsa.RSAPublicKey:
    """
    Rebuild an RSA public key from its hex-encoded DER form.

    Raises:
        KeyFormatError: malformed hex, undecodable DER or a non-RSA key.
    """
    try:
        der = binascii.unhexlify(value.strip())
    except (binascii.Error, ValueError) as err:
        msg = f"Couldn't parse the public key: {err}"
        raise KeyFormatError(msg) from err

    try:
        key = serialization.load_der_public_key(der)
    except (ValueError, UnsupportedAlgorithm) as err:
        msg = f"Couldn't parse the public key: {err}"
        raise KeyFormatError(msg) from err

    if not isinstance(key, rsa.RSAPublicKey):
        msg = f"Expected an RSA public key, got {type(key).__name__}"
        raise KeyFormatError(msg)
    return key


def encrypt_with_public_key(
    public_key: rsa.RSAPublicKey, secret: bytes, padding_name: str = OAEP
) -> bytes:
    """
    Encrypt a short secret directly with an RSA public key.

    Raises:
        CryptoError: the secret exceeds the key's capacity or the key is unusable.
    """
    if not isinstance(public_key, rsa.RSAPublicKey):
        msg = "Couldn't encrypt the secret key: not an RSA public key"
        raise CryptoError(msg)
    limit = max_secret_size(public_key, padding_name)
    if len(secret) > limit:
        msg = f"Secret of {len(secret)} bytes exceeds the {limit} byte RSA capacity"
        raise CryptoError(msg)
    try:
        return public_key.encrypt(secret, _padding(padding_name))
    except ValueError as err:
        msg = f"Couldn't encrypt the secret key: {err}"
        raise CryptoError(msg) from err


def decrypt_with_private_key(
    private_key: rsa.RSAPrivateKey, ciphertext: bytes, padding_name: str = OAEP
) -> bytes:
    """
    Inverse of encrypt_with_public_key().

    Raises:
        CryptoError: padding or format mismatch, i.e. the ciphertext was not
            produced for this key or was tampered with.
    """
    try:
        return private_key.decrypt(ciphertext, _padding(padding_name))
    except ValueError as err:
        msg = "Couldn't decrypt the secret key: decryption failed"
        raise CryptoError(msg) from err
