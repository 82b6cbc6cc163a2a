"""
Local handshake example.

Runs a service and a client in one process, sharing an in-memory directory,
and prints the message the client decrypted.
"""

import logging

from hybridlink import DirectoryKeyStore, SecureClient, SecureService
from hybridlink.directory import MemoryBackend


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    directory = DirectoryKeyStore(MemoryBackend())

    service = SecureService(directory, identity="svc1", host="127.0.0.1", port=0)
    service.start_in_thread()
    host, port = service.address

    try:
        client = SecureClient(directory, host=host, port=port, identity="svc1")
        result = client.handshake()
        logger.info("Received from %s: %s", result.peer, result.message)
    finally:
        service.stop()


if __name__ == "__main__":
    main()
