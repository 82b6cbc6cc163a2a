"""
Threaded clients example.

Starts a service publishing to a JSON-file directory, then runs several
clients concurrently; each performs its own complete handshake.
"""

import logging
import tempfile
import threading
from pathlib import Path

from hybridlink import DirectoryKeyStore, HybridLinkError, SecureClient, SecureService
from hybridlink.directory import FileBackend


def main() -> None:
    logging.basicConfig(level=logging.WARNING)

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "directory.json"
        service = SecureService(
            DirectoryKeyStore(FileBackend(path)), host="127.0.0.1", port=0
        )
        service.start_in_thread()
        host, port = service.address

        def run(n: int) -> None:
            client = SecureClient(
                DirectoryKeyStore(FileBackend(path)), host=host, port=port
            )
            try:
                print(f"client {n}: {client.fetch_message()}")
            except HybridLinkError as err:
                print(f"client {n} failed: {err}")

        threads = [threading.Thread(target=run, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        service.stop()


if __name__ == "__main__":
    main()
