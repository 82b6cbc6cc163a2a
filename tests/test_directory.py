import json
from pathlib import Path
from typing import Any

import pytest
import requests

from hybridlink.common.crypto import AsymmetricIdentity, public_key_to_hex
from hybridlink.common.exceptions import DirectoryError, KeyFormatError
from hybridlink.directory import (
    DirectoryKeyStore,
    FileBackend,
    HttpBackend,
    MemoryBackend,
    open_backend,
)


class MockResponse:
    def __init__(self, status_code: int, json_data: Any = None) -> None:
        self.status_code = status_code
        self._json = json_data

    def json(self) -> Any:
        return self._json


@pytest.fixture(scope="module")
def identity() -> AsymmetricIdentity:
    return AsymmetricIdentity.generate()


def test_publish_and_lookup(identity: AsymmetricIdentity) -> None:
    store = DirectoryKeyStore(MemoryBackend())
    entry = store.publish("svc1", identity.public_key)
    assert entry.identity == "svc1"
    assert entry.public_key_hex == public_key_to_hex(identity.public_key)

    key = store.lookup("svc1")
    assert key.public_numbers() == identity.public_key.public_numbers()


def test_publish_replaces_previous_value(identity: AsymmetricIdentity) -> None:
    backend = MemoryBackend()
    store = DirectoryKeyStore(backend)
    store.publish("svc1", AsymmetricIdentity.generate().public_key)
    store.publish("svc1", identity.public_key)

    assert store.lookup("svc1").public_numbers() == identity.public_key.public_numbers()
    assert list(backend.entries()["svc1"]) == ["description"]


def test_lookup_missing_entry() -> None:
    store = DirectoryKeyStore(MemoryBackend())
    with pytest.raises(DirectoryError, match="nonexistent"):
        store.lookup("nonexistent")


def test_lookup_missing_attribute(identity: AsymmetricIdentity) -> None:
    backend = MemoryBackend()
    DirectoryKeyStore(backend, attribute="publicKey").publish("svc1", identity.public_key)
    with pytest.raises(DirectoryError):
        DirectoryKeyStore(backend).lookup("svc1")


@pytest.mark.parametrize("value", ["zz", "", "30820122"])
def test_lookup_malformed_key(value: str) -> None:
    backend = MemoryBackend()
    backend.put("svc1", "description", value)
    with pytest.raises(KeyFormatError):
        DirectoryKeyStore(backend).lookup("svc1")


def test_file_backend_persists(tmp_path: Path, identity: AsymmetricIdentity) -> None:
    path = tmp_path / "dir" / "directory.json"
    DirectoryKeyStore(FileBackend(path)).publish("svc1", identity.public_key)

    data = json.loads(path.read_text())
    assert data["svc1"]["description"] == public_key_to_hex(identity.public_key)

    key = DirectoryKeyStore(FileBackend(path)).lookup("svc1")
    assert key.public_numbers() == identity.public_key.public_numbers()


def test_file_backend_missing_file(tmp_path: Path) -> None:
    assert FileBackend(tmp_path / "absent.json").get("svc1", "description") is None


def test_file_backend_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "directory.json"
    path.write_text("{not json")
    with pytest.raises(DirectoryError, match="Couldn't read"):
        FileBackend(path).get("svc1", "description")


def test_open_backend(tmp_path: Path) -> None:
    assert isinstance(open_backend("memory:"), MemoryBackend)

    file_backend = open_backend(f"file://{tmp_path}/d.json")
    assert isinstance(file_backend, FileBackend)
    assert file_backend.file_path == tmp_path / "d.json"

    http_backend = open_backend("http://ldap.example:7389/")
    assert isinstance(http_backend, HttpBackend)
    assert http_backend.base_url == "http://ldap.example:7389"

    bare = open_backend("127.0.0.1:7389")
    assert isinstance(bare, HttpBackend)
    assert bare.base_url == "http://127.0.0.1:7389"

    with pytest.raises(DirectoryError, match="Unsupported"):
        open_backend("ldap://127.0.0.1:389")


def test_http_backend_get(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def fake_get(url: str, **kwargs: Any) -> MockResponse:
        calls.append((url, kwargs))
        return MockResponse(
            200, {"identity": "cn=svc,dc=x", "attribute": "description", "value": "AB"}
        )

    monkeypatch.setattr(requests, "get", fake_get)
    backend = HttpBackend("http://dir:7389", timeout=3)
    assert backend.get("cn=svc,dc=x", "description") == "AB"
    assert calls == [
        ("http://dir:7389/entries/cn%3Dsvc%2Cdc%3Dx/description", {"timeout": 3})
    ]


def test_http_backend_get_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(requests, "get", lambda url, **kw: MockResponse(404))
    store = DirectoryKeyStore(HttpBackend("http://dir:7389"))
    with pytest.raises(DirectoryError):
        store.lookup("nonexistent")


def test_http_backend_server_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(requests, "get", lambda url, **kw: MockResponse(503))
    with pytest.raises(DirectoryError, match="HTTP 503"):
        HttpBackend("http://dir:7389").get("svc1", "description")


def test_http_backend_unreachable(monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(url: str, **kwargs: Any) -> MockResponse:
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(requests, "get", refuse)
    monkeypatch.setattr(requests, "put", refuse)
    backend = HttpBackend("http://dir:7389")
    with pytest.raises(DirectoryError, match="Couldn't reach"):
        backend.get("svc1", "description")
    with pytest.raises(DirectoryError, match="Couldn't reach"):
        backend.put("svc1", "description", "AB")


def test_http_backend_put_sends_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def fake_put(url: str, **kwargs: Any) -> MockResponse:
        calls.append(kwargs)
        return MockResponse(200)

    monkeypatch.setattr(requests, "put", fake_put)
    HttpBackend("http://dir:7389", user="admin", password="user").put(
        "svc1", "description", "AB"
    )
    assert calls[0]["auth"] == ("admin", "user")
    assert calls[0]["json"] == {"value": "AB"}


def test_http_backend_put_unauthorized(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(requests, "put", lambda url, **kw: MockResponse(401))
    with pytest.raises(DirectoryError, match="Not authorized"):
        HttpBackend("http://dir:7389", password="wrong").put("svc1", "description", "AB")


def test_http_backend_non_json_reply(monkeypatch: pytest.MonkeyPatch) -> None:
    class HtmlResponse(MockResponse):
        def json(self) -> Any:
            raise requests.JSONDecodeError("Expecting value", "<html>", 0)

    monkeypatch.setattr(requests, "get", lambda url, **kw: HtmlResponse(200))
    with pytest.raises(DirectoryError, match="Malformed directory reply"):
        HttpBackend("http://dir:7389").get("svc1", "description")


def test_http_backend_wrong_schema_reply(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        requests, "get", lambda url, **kw: MockResponse(200, {"status": "ok"})
    )
    store = DirectoryKeyStore(HttpBackend("http://dir:7389"))
    with pytest.raises(DirectoryError, match="Malformed directory reply"):
        store.lookup("svc1")


def test_file_backend_replaces_file_atomically(tmp_path: Path) -> None:
    path = tmp_path / "directory.json"
    backend = FileBackend(path)
    backend.put("svc1", "description", "AA")
    backend.put("svc1", "description", "BB")

    assert json.loads(path.read_text()) == {"svc1": {"description": "BB"}}
    assert [p.name for p in tmp_path.iterdir()] == ["directory.json"]


def test_file_backend_failed_write_keeps_old_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = tmp_path / "directory.json"
    backend = FileBackend(path)
    backend.put("svc1", "description", "AA")
    before = path.read_text()

    def disk_full(*args: Any, **kwargs: Any) -> None:
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(json, "dump", disk_full)
    with pytest.raises(DirectoryError, match="Couldn't write"):
        backend.put("svc1", "description", "BB")

    assert path.read_text() == before
    assert [p.name for p in tmp_path.iterdir()] == ["directory.json"]
