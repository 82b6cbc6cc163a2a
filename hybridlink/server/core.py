"""
Secure service: publishes its public key and answers each client with one
message encrypted under the session key the client sent.
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from typing import TYPE_CHECKING, Callable

from hybridlink.common.config import Config
from hybridlink.common.crypto import AsymmetricIdentity
from hybridlink.common.exceptions import CryptoError, HybridLinkError, TransportError
from hybridlink.common.logging_utils import setup_logger
from hybridlink.common.models import HandshakeResult, HandshakeState
from hybridlink.common.session import SessionKey, encrypt
from hybridlink.common.transport import FramedConnection

if TYPE_CHECKING:
    from hybridlink.directory.store import DirectoryKeyStore


def default_message() -> str:
    """Message with the current date and time."""
    stamp = time.strftime("%d-%m-%Y at %H:%M:%S")
    return f"This super secret message was generated on {stamp}"


class SecureService:
    """Service side of the hybrid key exchange, one worker thread per client."""

    def __init__(
        self,
        directory: DirectoryKeyStore,
        identity: str | None = None,
        host: str | None = None,
        port: int | None = None,
        message_factory: Callable[[], str] = default_message,
        on_error_callback: Callable[[Exception], None] | None = None,
        rsa_padding: str | None = None,
        rsa_key_size: int | None = None,
        timeout: float | None = None,
        max_frame_size: int | None = None,
        log_level: int | None = None,
        config: Config | None = None,
    ) -> None:
        config = config or Config()
        self.logger = logging.getLogger(__name__)
        setup_logger(self.logger, log_level or config.LOG_LEVEL)

        self.directory = directory
        self.identity_name = identity or config.IDENTITY
        self.host = host or config.SERVICE_HOST
        self.port = config.SERVICE_PORT if port is None else port
        self.message_factory = message_factory
        self.on_error_callback = on_error_callback
        self.rsa_padding = rsa_padding or config.RSA_PADDING
        self.timeout = timeout if timeout is not None else config.IO_TIMEOUT
        self.max_frame_size = max_frame_size or config.MAX_FRAME_SIZE
        self.accept_poll_interval = config.ACCEPT_POLL_INTERVAL

        # Shared read-only by every worker
        self.identity = AsymmetricIdentity.generate(
            rsa_key_size or config.RSA_KEY_SIZE, config.RSA_PUBLIC_EXPONENT
        )

        self._listener: socket.socket | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def address(self) -> tuple[str, int]:
        """Bound address; valid after start()."""
        if self._listener is None:
            return self.host, self.port
        host, port = self._listener.getsockname()[:2]
        return host, port

    def publish(self) -> None:
        """Store the public key in the directory (replace semantics)."""
        self.directory.publish(self.identity_name, self.identity.public_key)

    def start(self) -> None:
        """Publish the public key and open the listening socket."""
        self.publish()
        try:
            listener = socket.create_server((self.host, self.port))
        except OSError as err:
            msg = f"Couldn't create server socket on port {self.port}: {err}"
            raise TransportError(msg) from err
        listener.settimeout(self.accept_poll_interval)
        self._listener = listener
        self._stop.clear()
        host, port = self.address
        self.logger.info("Service %s listening on %s:%s", self.identity_name, host, port)

    def serve_forever(self) -> None:
        """Accept clients until stop() is called."""
        if self._listener is None:
            self.start()
        listener = self._listener
        if listener is None:
            msg = "Service listener is not open"
            raise TransportError(msg)

        while not self._stop.is_set():
            try:
                sock, addr = listener.accept()
            except socket.timeout:
                continue
            except OSError as err:
                if self._stop.is_set():
                    break
                self.logger.error("Accept failed: %s", err)
                raise TransportError(str(err)) from err

            peer = f"{addr[0]}:{addr[1]}"
            conn = FramedConnection(sock, peer, self.timeout, self.max_frame_size)
            worker = threading.Thread(
                target=self._worker, args=(conn,), name=f"hybridlink-{peer}", daemon=True
            )
            worker.start()

        self._close_listener()

    def start_in_thread(self) -> threading.Thread:
        """Start the service and run the accept loop in a background thread."""
        if self._thread and self._thread.is_alive():
            self.logger.warning("Service is already running in a thread")
            return self._thread
        self.start()
        self._thread = threading.Thread(
            target=self.serve_forever, name="hybridlink-accept", daemon=True
        )
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        """Signal the accept loop to finish and wait for it."""
        self._stop.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._close_listener()

    def _close_listener(self) -> None:
        if self._listener is not None:
            self._listener.close()
            self._listener = None

    def _worker(self, conn: FramedConnection) -> None:
        try:
            self.handle_connection(conn)
        except HybridLinkError as err:
            self.logger.warning("Handshake with %s aborted: %s", conn.peer, err)
            if self.on_error_callback:
                self.on_error_callback(err)
        except Exception as err:
            self.logger.exception("Worker for %s failed: %s", conn.peer, err)
            if self.on_error_callback:
                self.on_error_callback(err)

    def handle_connection(self, conn: FramedConnection) -> HandshakeResult:
        """
        Run the service side of one handshake and close the connection.

        Raises:
            TransportError, CryptoError: the exchange failed; the connection
                is closed either way.
        """
        with conn:
            self.logger.info("Accepted connection from %s", conn.peer)
            wrapped = conn.recv()

            self.logger.info("Decrypting secret key ...")
            material = self.identity.decrypt(wrapped, self.rsa_padding)
            try:
                session_key = SessionKey(material)
            except CryptoError as err:
                msg = "Couldn't decrypt the secret key: unexpected key length"
                raise CryptoError(msg) from err
            conn.advance(HandshakeState.SECRET_RECEIVED)

            self.logger.info("Encrypting message ...")
            message = self.message_factory()
            conn.send(encrypt(session_key, message.encode("utf-8")))
            conn.advance(HandshakeState.MESSAGE_EXCHANGED)
            self.logger.info("Message sent to %s", conn.peer)

        return HandshakeResult(
            identity=self.identity_name,
            peer=conn.peer,
            state=HandshakeState.MESSAGE_EXCHANGED,
            message=message,
        )
