from pathlib import Path
from typing import Any

import pytest
import requests
from fastapi.testclient import TestClient

from hybridlink.common.config import Config
from hybridlink.common.crypto import AsymmetricIdentity
from hybridlink.common.exceptions import DirectoryError
from hybridlink.directory import DirectoryKeyStore, FileBackend, HttpBackend, MemoryBackend
from hybridlink.directory.server import DirectoryServer


@pytest.fixture
def open_server() -> DirectoryServer:
    return DirectoryServer(backend=MemoryBackend(), password="")


@pytest.fixture
def protected_server() -> DirectoryServer:
    return DirectoryServer(backend=MemoryBackend(), user="admin", password="secret")


def test_health(open_server: DirectoryServer) -> None:
    response = TestClient(open_server.app).get("/health")
    assert response.status_code == 200  # noqa: PLR2004
    assert response.json()["status"] == "ok"


def test_put_then_get(open_server: DirectoryServer) -> None:
    client = TestClient(open_server.app)
    response = client.put("/entries/svc1/description", json={"value": "ABCD"})
    assert response.status_code == 200  # noqa: PLR2004

    response = client.get("/entries/svc1/description")
    assert response.status_code == 200  # noqa: PLR2004
    assert response.json() == {
        "identity": "svc1",
        "attribute": "description",
        "value": "ABCD",
    }


def test_put_replaces(open_server: DirectoryServer) -> None:
    client = TestClient(open_server.app)
    client.put("/entries/svc1/description", json={"value": "OLD"})
    client.put("/entries/svc1/description", json={"value": "NEW"})
    assert client.get("/entries/svc1/description").json()["value"] == "NEW"


def test_get_missing(open_server: DirectoryServer) -> None:
    response = TestClient(open_server.app).get("/entries/nonexistent/description")
    assert response.status_code == 404  # noqa: PLR2004


def test_put_requires_credentials(protected_server: DirectoryServer) -> None:
    client = TestClient(protected_server.app)
    response = client.put("/entries/svc1/description", json={"value": "AB"})
    assert response.status_code == 401  # noqa: PLR2004

    response = client.put(
        "/entries/svc1/description", json={"value": "AB"}, auth=("admin", "nope")
    )
    assert response.status_code == 403  # noqa: PLR2004

    response = client.put(
        "/entries/svc1/description", json={"value": "AB"}, auth=("admin", "secret")
    )
    assert response.status_code == 200  # noqa: PLR2004

    # reads stay anonymous
    assert client.get("/entries/svc1/description").status_code == 200  # noqa: PLR2004


def test_put_rejects_bad_body(open_server: DirectoryServer) -> None:
    response = TestClient(open_server.app).put(
        "/entries/svc1/description", json={"nope": 1}
    )
    assert response.status_code == 422  # noqa: PLR2004


def test_file_backed_server(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HYBRIDLINK_DIRECTORY_DATA_FILE", str(tmp_path / "d.json"))
    monkeypatch.delenv("HYBRIDLINK_DIRECTORY_PASSWORD", raising=False)
    server = DirectoryServer(config=Config())
    assert isinstance(server.backend, FileBackend)

    TestClient(server.app).put("/entries/svc1/description", json={"value": "AB"})
    assert FileBackend(tmp_path / "d.json").get("svc1", "description") == "AB"


def _route_requests_to(monkeypatch: pytest.MonkeyPatch, client: TestClient) -> None:
    def forward(method: str):  # type: ignore[no-untyped-def]
        def call(url: str, **kwargs: Any) -> Any:
            kwargs.pop("timeout", None)
            return getattr(client, method)(url, **kwargs)

        return call

    monkeypatch.setattr(requests, "get", forward("get"))
    monkeypatch.setattr(requests, "put", forward("put"))


def test_key_store_over_http(
    protected_server: DirectoryServer, monkeypatch: pytest.MonkeyPatch
) -> None:
    _route_requests_to(monkeypatch, TestClient(protected_server.app))
    identity = AsymmetricIdentity.generate()

    writer = DirectoryKeyStore(
        HttpBackend("http://testserver", user="admin", password="secret")
    )
    writer.publish("group.service1", identity.public_key)

    reader = DirectoryKeyStore(HttpBackend("http://testserver", password=""))
    key = reader.lookup("group.service1")
    assert key.public_numbers() == identity.public_key.public_numbers()

    with pytest.raises(DirectoryError):
        reader.lookup("nonexistent")
    with pytest.raises(DirectoryError, match="Not authorized"):
        DirectoryKeyStore(
            HttpBackend("http://testserver", user="admin", password="wrong")
        ).publish("group.service1", identity.public_key)
