"""
Secure client: fetches the service's public key, sends it a fresh session
key and decrypts the one message the service answers with.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from hybridlink.common.config import Config
from hybridlink.common.crypto import encrypt_with_public_key
from hybridlink.common.exceptions import HandshakeError, HybridLinkError
from hybridlink.common.logging_utils import setup_logger
from hybridlink.common.models import HandshakeResult, HandshakeState
from hybridlink.common.session import SessionKey, decrypt
from hybridlink.common.transport import FramedConnection

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

    from hybridlink.directory.store import DirectoryKeyStore


class SecureClient:
    """Client side of the hybrid key exchange; one handshake per call."""

    def __init__(
        self,
        directory: DirectoryKeyStore,
        host: str | None = None,
        port: int | None = None,
        identity: str | None = None,
        on_error_callback: Callable[[Exception], None] | None = None,
        rsa_padding: str | None = None,
        session_key_size: int | None = None,
        timeout: float | None = None,
        max_frame_size: int | None = None,
        log_level: int | None = None,
        config: Config | None = None,
    ) -> None:
        config = config or Config()
        self.logger = logging.getLogger(__name__)
        setup_logger(self.logger, log_level or config.LOG_LEVEL)

        self.directory = directory
        self.host = host or config.SERVICE_HOST
        self.port = config.SERVICE_PORT if port is None else port
        self.identity = identity or config.IDENTITY
        self.on_error_callback = on_error_callback
        self.rsa_padding = rsa_padding or config.RSA_PADDING
        self.session_key_size = session_key_size or config.SESSION_KEY_SIZE
        self.timeout = timeout if timeout is not None else config.IO_TIMEOUT
        self.max_frame_size = max_frame_size or config.MAX_FRAME_SIZE
        self.last_state = HandshakeState.IDLE

    def handshake(self) -> HandshakeResult:
        """
        Run one complete exchange with the service.

        Every call starts from scratch: a new directory lookup and a new
        session key. Nothing is retried.

        Raises:
            DirectoryError, KeyFormatError: the public key could not be
                obtained; no connection is attempted.
            TransportError, CryptoError: the exchange failed; the connection
                is closed.
        """
        try:
            return self._handshake()
        except HybridLinkError as err:
            self.logger.error("Handshake with %s failed: %s", self.identity, err)
            if self.on_error_callback:
                self.on_error_callback(err)
            raise

    def _handshake(self) -> HandshakeResult:
        self.last_state = HandshakeState.IDLE
        public_key = self.directory.lookup(self.identity)

        self.logger.info("Connecting to %s:%s ...", self.host, self.port)
        conn = FramedConnection.connect(
            self.host, self.port, self.timeout, self.max_frame_size
        )
        with conn:
            try:
                message = self._exchange(conn, public_key)
            finally:
                self.last_state = conn.state

        self.logger.info("Terminated.")
        return HandshakeResult(
            identity=self.identity,
            peer=conn.peer,
            state=HandshakeState.MESSAGE_EXCHANGED,
            message=message,
        )

    def _exchange(self, conn: FramedConnection, public_key: RSAPublicKey) -> str:
        self.logger.info("Generating secret key ...")
        session_key = SessionKey.generate(self.session_key_size)

        self.logger.info("Encrypting secret key ...")
        conn.send(
            encrypt_with_public_key(public_key, session_key.material, self.rsa_padding)
        )
        conn.advance(HandshakeState.SECRET_SENT)

        reply = conn.recv()
        self.logger.info("Decrypting message ...")
        message = decrypt(session_key, reply).decode("utf-8", errors="replace")
        conn.advance(HandshakeState.MESSAGE_EXCHANGED)
        return message

    def fetch_message(self) -> str:
        """Handshake and return only the decrypted text."""
        result = self.handshake()
        if result.message is None:
            msg = "Handshake completed without a message"
            raise HandshakeError(msg, result.state.value)
        return result.message
