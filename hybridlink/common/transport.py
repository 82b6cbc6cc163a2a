"""
Length-prefixed framing over a stream socket.

Each frame is a 4-byte big-endian unsigned length N followed by exactly N
payload bytes. Frames larger than the configured cap are refused on both
ends before any payload is read or written.
"""

from __future__ import annotations

import logging
import socket
import struct

from hybridlink.common.exceptions import HandshakeError, TransportError
from hybridlink.common.models import HandshakeState

logger = logging.getLogger(__name__)

MAX_FRAME_SIZE = 4 * 1024 * 1024  # 4 MiB hard limit
LENGTH_STRUCT = struct.Struct("!I")  # network byte order unsigned 32-bit length


def recv_exact(sock: socket.socket, n: int) -> bytes:
    """
    Read exactly n bytes.

    Raises:
        TransportError: the peer closed the stream early, the read timed out
            or the socket failed.
    """
    chunks = []
    remaining = n
    while remaining:
        try:
            chunk = sock.recv(min(remaining, 65536))
        except socket.timeout as err:
            msg = f"Timed out waiting for {n} bytes (got {n - remaining})"
            raise TransportError(msg) from err
        except OSError as err:
            msg = f"Couldn't receive data: {err}"
            raise TransportError(msg) from err
        if not chunk:
            msg = f"Stream closed after {n - remaining} of {n} bytes"
            raise TransportError(msg)
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def send_frame(
    sock: socket.socket, payload: bytes, max_size: int = MAX_FRAME_SIZE
) -> None:
    """Write one frame (header and payload in a single sendall)."""
    if len(payload) > max_size:
        msg = f"Frame too large: {len(payload)} > {max_size}"
        raise TransportError(msg)
    try:
        sock.sendall(LENGTH_STRUCT.pack(len(payload)) + payload)
    except socket.timeout as err:
        msg = "Timed out sending frame"
        raise TransportError(msg) from err
    except OSError as err:
        msg = f"Couldn't send data: {err}"
        raise TransportError(msg) from err


def recv_frame(sock: socket.socket, max_size: int = MAX_FRAME_SIZE) -> bytes:
    """Read one frame and return its payload."""
    (length,) = LENGTH_STRUCT.unpack(recv_exact(sock, LENGTH_STRUCT.size))
    if length > max_size:
        msg = f"Frame too large: {length} > {max_size}"
        raise TransportError(msg)
    return recv_exact(sock, length)


class FramedConnection:
    """
    Per-connection handle: the socket, the peer address and the handshake
    state of this one connection.
    """

    def __init__(
        self,
        sock: socket.socket,
        peer: str,
        timeout: float | None = None,
        max_frame_size: int = MAX_FRAME_SIZE,
    ) -> None:
        self.sock = sock
        self.peer = peer
        self.max_frame_size = max_frame_size
        self.state = HandshakeState.CONNECTED
        if timeout is not None:
            sock.settimeout(timeout)

    @classmethod
    def connect(
        cls,
        host: str,
        port: int,
        timeout: float | None = None,
        max_frame_size: int = MAX_FRAME_SIZE,
    ) -> FramedConnection:
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as err:
            msg = f"Couldn't connect to the server {host}:{port}: {err}"
            raise TransportError(msg) from err
        return cls(sock, f"{host}:{port}", timeout, max_frame_size)

    @property
    def closed(self) -> bool:
        return self.state is HandshakeState.CLOSED

    def _check_open(self) -> None:
        if self.closed:
            msg = f"Connection to {self.peer} is closed"
            raise HandshakeError(msg, self.state.value)

    def send(self, payload: bytes) -> None:
        self._check_open()
        send_frame(self.sock, payload, self.max_frame_size)

    def recv(self) -> bytes:
        self._check_open()
        return recv_frame(self.sock, self.max_frame_size)

    def advance(self, state: HandshakeState) -> None:
        self._check_open()
        logger.debug("%s: %s -> %s", self.peer, self.state.value, state.value)
        self.state = state

    def close(self) -> None:
        if self.closed:
            return
        try:
            self.sock.close()
        except OSError as err:
            logger.warning("Couldn't properly close connection to %s: %s", self.peer, err)
        self.state = HandshakeState.CLOSED

    def __enter__(self) -> FramedConnection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
